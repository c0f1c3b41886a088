"""Simulation driver and event system."""

from .controller import SimulationController
from .events import Event, EventType

__all__ = [
    "SimulationController",
    "Event",
    "EventType",
]
