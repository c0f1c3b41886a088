"""Event system for the simulation driver."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Optional


class EventType(Enum):
    """Types of events emitted by the simulation controller."""

    # Run control
    SIMULATION_STARTED = auto()
    SIMULATION_PAUSED = auto()
    SIMULATION_RESET = auto()
    TIME_SCALE_CHANGED = auto()

    # Seed values
    INITIAL_CONDITIONS_CHANGED = auto()

    # Phase completions
    ICE_MELTED = auto()
    WATER_FROZEN = auto()


@dataclass
class Event:
    """Event data structure for the event system.

    Events are emitted by the controller and consumed by listeners
    (e.g., the WebSocket manager or logging).

    Attributes:
        type: The type of event.
        timestamp: When the event occurred.
        data: Optional dictionary of event-specific data.
        source: Optional identifier for the event source.
    """

    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Optional[dict[str, Any]] = None
    source: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event.
        """
        return {
            "type": self.type.name,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
            "source": self.source,
        }


def run_state_event(running: bool, time_seconds: float) -> Event:
    """Create a SIMULATION_STARTED or SIMULATION_PAUSED event.

    Args:
        running: New running flag.
        time_seconds: Simulated time at the transition.

    Returns:
        Run state event.
    """
    return Event(
        type=EventType.SIMULATION_STARTED if running else EventType.SIMULATION_PAUSED,
        data={"running": running, "time_seconds": time_seconds},
        source="controller",
    )


def reset_event() -> Event:
    """Create a SIMULATION_RESET event."""
    return Event(type=EventType.SIMULATION_RESET, source="controller")


def time_scale_event(time_scale: int) -> Event:
    """Create a TIME_SCALE_CHANGED event.

    Args:
        time_scale: New speed multiplier.

    Returns:
        Time scale event.
    """
    return Event(
        type=EventType.TIME_SCALE_CHANGED,
        data={"time_scale": time_scale},
        source="controller",
    )


def initial_conditions_event(values: dict[str, float]) -> Event:
    """Create an INITIAL_CONDITIONS_CHANGED event.

    Args:
        values: All seed values after the update.

    Returns:
        Initial conditions event.
    """
    return Event(
        type=EventType.INITIAL_CONDITIONS_CHANGED,
        data=dict(values),
        source="controller",
    )


def phase_event(event_type: EventType, time_seconds: float, mass: float) -> Event:
    """Create an ICE_MELTED or WATER_FROZEN event.

    Args:
        event_type: ICE_MELTED or WATER_FROZEN.
        time_seconds: Simulated time when the phase ran out.
        mass: Mass of the phase that now holds all the ice/water, in kg.

    Returns:
        Phase completion event.
    """
    return Event(
        type=event_type,
        data={"time_seconds": time_seconds, "mass_kg": mass},
        source="controller",
    )
