"""Controller driving the bottle simulation in real time."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Optional

from ..config import BottleSimConfig, load_config
from ..simulator.simulation import SimulationSnapshot, Simulator
from .events import (
    Event,
    EventType,
    initial_conditions_event,
    phase_event,
    reset_event,
    run_state_event,
    time_scale_event,
)

logger = logging.getLogger(__name__)

EventListener = Callable[[Event], Awaitable[None]]

# Editable seed fields and whether they are masses (clamped at 0)
INITIAL_CONDITION_FIELDS: dict[str, bool] = {
    "init_water": True,
    "init_ice": True,
    "init_air": True,
    "init_system_temp": False,
    "init_outside_temp": False,
}


class SimulationController:
    """Owns the simulator and advances it from a wall-clock loop.

    The controller is the only caller of Simulator.step(). It measures the
    real time elapsed between loop iterations, steps the simulator once per
    iteration and notifies listeners of run-state changes and of a phase
    running out (all ice melted, all water frozen).

    Seed edits go through update_initial_conditions(), which keeps masses
    non-negative before the simulator ever sees them.
    """

    def __init__(
        self,
        config: Optional[BottleSimConfig] = None,
        simulator: Optional[Simulator] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Configuration. Loads from files if None.
            simulator: Simulator to drive. Built from config if None.
        """
        self.config = config or load_config()
        self._simulator = simulator or Simulator(
            params=self.config.to_thermal_parameters(),
            initial=self.config.to_initial_conditions(),
        )
        self._event_listeners: list[EventListener] = []
        self._running = False
        self._loop_task: Optional[asyncio.Task[None]] = None

    @property
    def simulator(self) -> Simulator:
        """The simulator driven by this controller."""
        return self._simulator

    @property
    def is_looping(self) -> bool:
        """Whether the background tick loop is active."""
        return self._running

    def add_event_listener(self, listener: EventListener) -> None:
        """Add listener for controller events.

        Args:
            listener: Async function taking Event.
        """
        self._event_listeners.append(listener)

    async def _emit(self, event: Event) -> None:
        """Deliver an event to every listener."""
        for listener in self._event_listeners:
            try:
                await listener(event)
            except Exception as e:
                logger.warning("Event listener failed for %s: %s", event.type.name, e)

    def snapshot(self) -> SimulationSnapshot:
        """Current public state of the simulator."""
        return self._simulator.snapshot()

    async def tick(self, dt: float) -> float:
        """Step the simulator once and report phase completions.

        Args:
            dt: Wall-clock seconds since the previous tick.

        Returns:
            Joules exchanged with the environment during the tick.
        """
        sim = self._simulator
        had_ice = sim.state.mass_ice > 0.0
        had_water = sim.state.mass_water > 0.0

        q = sim.step(dt)

        if had_ice and sim.state.mass_ice == 0.0:
            logger.info("All ice melted at t=%.1fs", sim.time_seconds)
            await self._emit(
                phase_event(EventType.ICE_MELTED, sim.time_seconds, sim.state.mass_water)
            )
        if had_water and sim.state.mass_water == 0.0:
            logger.info("All water frozen at t=%.1fs", sim.time_seconds)
            await self._emit(
                phase_event(EventType.WATER_FROZEN, sim.time_seconds, sim.state.mass_ice)
            )
        return q

    async def toggle_running(self) -> bool:
        """Start (reseeding from the init fields) or pause the simulation.

        Returns:
            The new running flag.
        """
        running = self._simulator.toggle_running()
        logger.info(
            "Simulation %s at t=%.1fs",
            "started" if running else "paused",
            self._simulator.time_seconds,
        )
        await self._emit(run_state_event(running, self._simulator.time_seconds))
        return running

    async def reset(self) -> None:
        """Reseed from the init fields, pause and rewind the clock."""
        self._simulator.reset_from_init()
        logger.info("Simulation reset")
        await self._emit(reset_event())

    async def cycle_time_scale(self) -> int:
        """Advance the speed multiplier.

        Returns:
            The new multiplier.
        """
        scale = int(self._simulator.cycle_time_scale())
        logger.info("Time scale x%d", scale)
        await self._emit(time_scale_event(scale))
        return scale

    def initial_conditions(self) -> dict[str, float]:
        """Current seed values keyed by field name."""
        return {name: getattr(self._simulator, name) for name in INITIAL_CONDITION_FIELDS}

    async def update_initial_conditions(self, **values: Any) -> dict[str, float]:
        """Edit seed values.

        Masses below 0 are clamped to 0. The new values only take effect on
        the next start from pause or reset.

        Args:
            **values: Any of the init_* field names with numeric values.
                None values are ignored.

        Returns:
            All seed values after the update.

        Raises:
            ValueError: If a field name is unknown or a value is not numeric.
        """
        updates: dict[str, float] = {}
        for name, value in values.items():
            if name not in INITIAL_CONDITION_FIELDS:
                raise ValueError(f"Unknown initial condition: {name}")
            if value is None:
                continue
            try:
                number = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {name}: {value!r}") from e
            if not math.isfinite(number):
                raise ValueError(f"Invalid value for {name}: {value!r}")
            if INITIAL_CONDITION_FIELDS[name] and number < 0.0:
                logger.debug("Clamping %s=%s to 0", name, number)
                number = 0.0
            updates[name] = number

        for name, number in updates.items():
            setattr(self._simulator, name, number)

        current = self.initial_conditions()
        if updates:
            logger.info("Initial conditions updated: %s", updates)
            await self._emit(initial_conditions_event(current))
        return current

    async def run(self, tick_interval: Optional[float] = None) -> None:
        """Run the real-time tick loop until stop() is called.

        Args:
            tick_interval: Seconds between ticks. Uses config if None.
        """
        interval = tick_interval or self.config.tick_interval
        self._running = True
        logger.info("Tick loop started (interval %.3fs)", interval)

        last_time = time.monotonic()
        while self._running:
            current_time = time.monotonic()
            dt = current_time - last_time
            last_time = current_time
            try:
                await self.tick(dt)
            except Exception as e:
                logger.error("Tick failed: %s", e)

            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break

        self._running = False
        logger.info("Tick loop stopped")

    async def start(self, tick_interval: Optional[float] = None) -> None:
        """Start the tick loop as a background task.

        Args:
            tick_interval: Seconds between ticks. Uses config if None.
        """
        if self._loop_task is not None:
            return
        if self.config.autostart and not self._simulator.running:
            await self.toggle_running()
        self._loop_task = asyncio.create_task(
            self.run(tick_interval), name="simulation-tick"
        )

    async def stop(self) -> None:
        """Stop the tick loop."""
        self._running = False
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
