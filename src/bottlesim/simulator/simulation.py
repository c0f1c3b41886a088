"""Tick-driven simulator owning the bottle's thermal state.

The simulator is a passive object: an external driver measures wall-clock
time and calls step() once per control-loop tick. Initial conditions are
editable at any time but only take effect when the simulation is started
from pause or explicitly reset.
"""

import logging
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Optional

from .thermal_model import ThermalParameters, ThermalState, apply_heat, heat_flow

logger = logging.getLogger(__name__)


class TimeScale(IntEnum):
    """Simulation speed multipliers, cycled in declaration order."""

    X1 = 1
    X2 = 2
    X5 = 5
    X10 = 10

    def next(self) -> "TimeScale":
        """Return the following speed, wrapping from X10 back to X1."""
        members = list(TimeScale)
        return members[(members.index(self) + 1) % len(members)]


@dataclass
class InitialConditions:
    """Seed values used to (re)build the thermal state."""

    water: float = 0.5  # kg
    ice: float = 0.1  # kg
    air: float = 0.02  # kg
    system_temp: float = 5.0  # °C
    outside_temp: float = 25.0  # °C

    def build_state(self) -> ThermalState:
        """Create a fresh ThermalState from these values.

        Ice can never start above 0°C, so its temperature is capped there
        while the water takes the system temperature as given. The usual
        phase bounds are then enforced, so water seeded below 0°C starts at
        0°C and an absent phase starts at 0°C.
        """
        state = ThermalState(
            mass_water=self.water,
            mass_ice=self.ice,
            mass_air=self.air,
            temp_water=self.system_temp,
            temp_ice=min(self.system_temp, 0.0),
        )
        state.enforce_bounds()
        return state


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only copy of the simulator's public state."""

    mass_water: float
    mass_ice: float
    mass_air: float
    temp_water: float
    temp_ice: float
    equivalent_temp: float
    total_mass: float
    outside_temp: float
    time_seconds: float
    running: bool
    time_scale: int

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to a JSON-compatible dictionary."""
        return asdict(self)


class Simulator:
    """Bottle thermal simulation.

    Owns a ThermalState exclusively and advances it in place on each step().
    The state is replaced wholesale only by apply_initial_conditions(), which
    runs when the simulation is started from pause and on reset_from_init().

    Example:
        sim = Simulator()
        sim.toggle_running()
        sim.step(1 / 60)
        print(sim.state.temp_water)
    """

    def __init__(
        self,
        params: Optional[ThermalParameters] = None,
        initial: Optional[InitialConditions] = None,
    ) -> None:
        """Initialize the simulator paused, at time 0 and speed x1.

        Args:
            params: Physical constants. Uses defaults if None.
            initial: Seed values. Uses defaults if None.
        """
        self.params = params or ThermalParameters()
        initial = initial or InitialConditions()

        self.init_water = initial.water
        self.init_ice = initial.ice
        self.init_air = initial.air
        self.init_system_temp = initial.system_temp
        self.init_outside_temp = initial.outside_temp

        self.state = initial.build_state()
        self.outside_temp = initial.outside_temp
        self.time_seconds = 0.0
        self.running = False
        self.time_scale = TimeScale.X1

    def initial_conditions(self) -> InitialConditions:
        """Current seed values."""
        return InitialConditions(
            water=self.init_water,
            ice=self.init_ice,
            air=self.init_air,
            system_temp=self.init_system_temp,
            outside_temp=self.init_outside_temp,
        )

    def step(self, dt: float) -> float:
        """Advance the physics by one tick.

        Args:
            dt: Wall-clock seconds since the previous tick. Scaled by the
                current time scale before integration. Large values are
                integrated in a single stage pass.

        Returns:
            Joules exchanged with the environment (positive = heating).
            0.0 when paused or when dt is not a positive number.
        """
        if not self.running:
            return 0.0

        dt_scaled = dt * int(self.time_scale)
        if not dt_scaled > 0.0:
            return 0.0

        q = heat_flow(self.state, self.outside_temp, dt_scaled, self.params)
        apply_heat(self.state, q, self.params)

        self.time_seconds += dt_scaled
        return q

    def apply_initial_conditions(self) -> None:
        """Rebuild the thermal state and environment from the init fields.

        Leaves running, time_scale and time_seconds untouched.
        """
        self.state = self.initial_conditions().build_state()
        self.outside_temp = self.init_outside_temp
        logger.debug(
            "Seeded state: water=%.3fkg ice=%.3fkg air=%.3fkg T=%.2f°C outside=%.2f°C",
            self.state.mass_water,
            self.state.mass_ice,
            self.state.mass_air,
            self.state.temp_water,
            self.outside_temp,
        )

    def reset_from_init(self) -> None:
        """Reseed, pause, rewind the clock and return to x1 speed."""
        self.apply_initial_conditions()
        self.time_seconds = 0.0
        self.running = False
        self.time_scale = TimeScale.X1
        logger.debug("Simulator reset")

    def toggle_running(self) -> bool:
        """Start or pause the simulation.

        Starting from pause reseeds the state from the init fields first;
        pausing keeps the current physical state as is.

        Returns:
            The new running flag.
        """
        if not self.running:
            self.apply_initial_conditions()
        self.running = not self.running
        logger.debug("Simulator %s", "running" if self.running else "paused")
        return self.running

    def cycle_time_scale(self) -> TimeScale:
        """Move to the next speed multiplier (1 → 2 → 5 → 10 → 1).

        Returns:
            The new time scale.
        """
        self.time_scale = self.time_scale.next()
        logger.debug("Time scale set to x%d", self.time_scale)
        return self.time_scale

    def snapshot(self) -> SimulationSnapshot:
        """Copy the public state for display or serialization."""
        return SimulationSnapshot(
            mass_water=self.state.mass_water,
            mass_ice=self.state.mass_ice,
            mass_air=self.state.mass_air,
            temp_water=self.state.temp_water,
            temp_ice=self.state.temp_ice,
            equivalent_temp=self.state.equivalent_temperature(self.params),
            total_mass=self.state.total_mass,
            outside_temp=self.outside_temp,
            time_seconds=self.time_seconds,
            running=self.running,
            time_scale=int(self.time_scale),
        )
