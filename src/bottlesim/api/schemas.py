"""Data classes for API request/response schemas."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..simulator.simulation import SimulationSnapshot


@dataclass
class ThermalStateResponse:
    """Masses (kg) and temperatures (°C) of the bottle contents."""

    mass_water: float
    mass_ice: float
    mass_air: float
    temp_water: float
    temp_ice: float


@dataclass
class SimulationStatus:
    """Current simulation status response."""

    running: bool
    time_scale: int
    time_seconds: float
    outside_temp: float
    equivalent_temp: float
    total_mass: float
    state: ThermalStateResponse

    @classmethod
    def from_snapshot(cls, snapshot: SimulationSnapshot) -> "SimulationStatus":
        """Build the response from a simulator snapshot."""
        return cls(
            running=snapshot.running,
            time_scale=snapshot.time_scale,
            time_seconds=snapshot.time_seconds,
            outside_temp=snapshot.outside_temp,
            equivalent_temp=snapshot.equivalent_temp,
            total_mass=snapshot.total_mass,
            state=ThermalStateResponse(
                mass_water=snapshot.mass_water,
                mass_ice=snapshot.mass_ice,
                mass_air=snapshot.mass_air,
                temp_water=snapshot.temp_water,
                temp_ice=snapshot.temp_ice,
            ),
        )


@dataclass
class InitialConditionsResponse:
    """Seed values applied on the next start or reset."""

    init_water: float
    init_ice: float
    init_air: float
    init_system_temp: float
    init_outside_temp: float


@dataclass
class InitialConditionsUpdate:
    """Partial update of the seed values. Omitted fields are unchanged."""

    init_water: Optional[float] = None
    init_ice: Optional[float] = None
    init_air: Optional[float] = None
    init_system_temp: Optional[float] = None
    init_outside_temp: Optional[float] = None


@dataclass
class WebSocketMessage:
    """WebSocket message format."""

    type: str  # "snapshot", "event"
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)
