"""Integration tests for the simulation controller."""

import asyncio

import pytest

from bottlesim.config import BottleSimConfig
from bottlesim.core.controller import SimulationController
from bottlesim.core.events import Event, EventType
from bottlesim.simulator.simulation import InitialConditions, Simulator


@pytest.fixture
def events() -> list[Event]:
    """Collected controller events."""
    return []


@pytest.fixture
def recording_controller(
    controller: SimulationController, events: list[Event]
) -> SimulationController:
    """Controller that records every event it emits."""

    async def record(event: Event) -> None:
        events.append(event)

    controller.add_event_listener(record)
    return controller


class TestControllerInitialization:
    """Test controller construction."""

    def test_simulator_built_from_config(self, test_config: BottleSimConfig) -> None:
        """Config seed values and coefficient reach the simulator."""
        test_config.initial.water_kg = 2.0
        test_config.physics.heat_transfer_coefficient = 7.5
        controller = SimulationController(config=test_config)
        assert controller.simulator.init_water == 2.0
        assert controller.simulator.state.mass_water == 2.0
        assert controller.simulator.params.heat_transfer_coefficient == 7.5

    def test_uses_given_simulator(self, test_config: BottleSimConfig) -> None:
        """A supplied simulator is driven as is."""
        sim = Simulator()
        controller = SimulationController(config=test_config, simulator=sim)
        assert controller.simulator is sim

    def test_starts_paused(self, controller: SimulationController) -> None:
        """No loop and no running simulation initially."""
        assert not controller.is_looping
        assert controller.snapshot().running is False


class TestRunControl:
    """Test start/pause/reset/speed commands."""

    @pytest.mark.asyncio
    async def test_toggle_emits_events(
        self, recording_controller: SimulationController, events: list[Event]
    ) -> None:
        """Start and pause each emit one event."""
        assert await recording_controller.toggle_running() is True
        assert await recording_controller.toggle_running() is False
        assert [e.type for e in events] == [
            EventType.SIMULATION_STARTED,
            EventType.SIMULATION_PAUSED,
        ]

    @pytest.mark.asyncio
    async def test_reset(
        self, recording_controller: SimulationController, events: list[Event]
    ) -> None:
        """Reset pauses and rewinds the clock."""
        await recording_controller.toggle_running()
        await recording_controller.tick(2.0)
        await recording_controller.reset()

        snap = recording_controller.snapshot()
        assert snap.running is False
        assert snap.time_seconds == 0.0
        assert events[-1].type == EventType.SIMULATION_RESET

    @pytest.mark.asyncio
    async def test_cycle_time_scale(
        self, recording_controller: SimulationController, events: list[Event]
    ) -> None:
        """Each press moves to the next multiplier."""
        assert await recording_controller.cycle_time_scale() == 2
        assert await recording_controller.cycle_time_scale() == 5
        assert events[-1].data == {"time_scale": 5}

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(
        self, controller: SimulationController, events: list[Event]
    ) -> None:
        """A listener error is logged and later listeners still run."""

        async def broken(event: Event) -> None:
            raise RuntimeError("boom")

        async def record(event: Event) -> None:
            events.append(event)

        controller.add_event_listener(broken)
        controller.add_event_listener(record)
        await controller.toggle_running()
        assert len(events) == 1


class TestInitialConditions:
    """Test seed value editing."""

    @pytest.mark.asyncio
    async def test_update_applies_on_next_start(
        self, controller: SimulationController
    ) -> None:
        """Edits are stored but not applied until the next start."""
        await controller.update_initial_conditions(init_water=1.5, init_outside_temp=-5.0)
        assert controller.simulator.state.mass_water == 0.5

        await controller.toggle_running()
        assert controller.simulator.state.mass_water == 1.5
        assert controller.simulator.outside_temp == -5.0

    @pytest.mark.asyncio
    async def test_negative_masses_clamped(
        self, controller: SimulationController
    ) -> None:
        """Masses cannot be set below zero; temperatures can."""
        values = await controller.update_initial_conditions(
            init_ice=-1.0, init_system_temp=-8.0
        )
        assert values["init_ice"] == 0.0
        assert values["init_system_temp"] == -8.0

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(
        self, controller: SimulationController
    ) -> None:
        """Unknown names raise and change nothing."""
        with pytest.raises(ValueError):
            await controller.update_initial_conditions(init_water=1.0, init_salt=0.1)
        assert controller.simulator.init_water == 0.5

    @pytest.mark.asyncio
    async def test_non_finite_rejected(self, controller: SimulationController) -> None:
        """NaN and infinity are not valid seed values."""
        with pytest.raises(ValueError):
            await controller.update_initial_conditions(init_system_temp=float("nan"))
        with pytest.raises(ValueError):
            await controller.update_initial_conditions(init_air=float("inf"))

    @pytest.mark.asyncio
    async def test_event_only_on_change(
        self, recording_controller: SimulationController, events: list[Event]
    ) -> None:
        """An update with nothing to change emits no event."""
        await recording_controller.update_initial_conditions(init_water=None)
        assert events == []
        await recording_controller.update_initial_conditions(init_air=0.1)
        assert events[0].type == EventType.INITIAL_CONDITIONS_CHANGED
        assert events[0].data["init_air"] == 0.1


class TestPhaseEvents:
    """Test phase completion detection."""

    @pytest.mark.asyncio
    async def test_ice_melted_event(
        self, test_config: BottleSimConfig, events: list[Event]
    ) -> None:
        """Melting the last ice emits ICE_MELTED once."""
        sim = Simulator(
            initial=InitialConditions(water=0.1, ice=0.001, system_temp=10.0, outside_temp=30.0)
        )
        controller = SimulationController(config=test_config, simulator=sim)

        async def record(event: Event) -> None:
            events.append(event)

        controller.add_event_listener(record)
        await controller.toggle_running()
        for _ in range(200):
            await controller.tick(1.0)

        melted = [e for e in events if e.type == EventType.ICE_MELTED]
        assert len(melted) == 1
        assert melted[0].data["mass_kg"] == pytest.approx(0.101)

    @pytest.mark.asyncio
    async def test_water_frozen_event(
        self, test_config: BottleSimConfig, events: list[Event]
    ) -> None:
        """Freezing the last water emits WATER_FROZEN once."""
        sim = Simulator(
            initial=InitialConditions(water=0.01, ice=0.0, system_temp=0.0, outside_temp=-20.0)
        )
        controller = SimulationController(config=test_config, simulator=sim)

        async def record(event: Event) -> None:
            events.append(event)

        controller.add_event_listener(record)
        await controller.toggle_running()
        for _ in range(200):
            await controller.tick(1.0)

        frozen = [e for e in events if e.type == EventType.WATER_FROZEN]
        assert len(frozen) == 1
        assert controller.simulator.state.mass_water == 0.0

    @pytest.mark.asyncio
    async def test_paused_tick_is_silent(
        self, recording_controller: SimulationController, events: list[Event]
    ) -> None:
        """Ticking while paused does nothing."""
        assert await recording_controller.tick(5.0) == 0.0
        assert events == []
        assert recording_controller.snapshot().time_seconds == 0.0


class TestTickLoop:
    """Test the real-time background loop."""

    @pytest.mark.asyncio
    async def test_loop_advances_running_simulation(
        self, controller: SimulationController
    ) -> None:
        """The loop steps the simulator with wall-clock time."""
        await controller.toggle_running()
        await controller.start()
        try:
            await asyncio.sleep(0.1)
            assert controller.is_looping
        finally:
            await controller.stop()

        assert not controller.is_looping
        assert controller.snapshot().time_seconds > 0.0

    @pytest.mark.asyncio
    async def test_loop_leaves_paused_simulation_alone(
        self, controller: SimulationController
    ) -> None:
        """A paused simulation keeps t=0 while the loop runs."""
        await controller.start()
        await asyncio.sleep(0.05)
        await controller.stop()
        assert controller.snapshot().time_seconds == 0.0

    @pytest.mark.asyncio
    async def test_autostart(self, test_config: BottleSimConfig) -> None:
        """With autostart the simulation is running once the loop starts."""
        test_config.autostart = True
        controller = SimulationController(config=test_config)
        await controller.start()
        try:
            assert controller.snapshot().running is True
        finally:
            await controller.stop()

    @pytest.mark.asyncio
    async def test_start_twice_is_harmless(
        self, controller: SimulationController
    ) -> None:
        """A second start does not spawn another loop."""
        await controller.start()
        task = controller._loop_task
        await controller.start()
        assert controller._loop_task is task
        await controller.stop()
