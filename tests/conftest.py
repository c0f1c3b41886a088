"""Pytest fixtures for bottle simulation tests."""

import pytest

from bottlesim.config import BottleSimConfig
from bottlesim.core.controller import SimulationController
from bottlesim.simulator.simulation import InitialConditions, Simulator
from bottlesim.simulator.thermal_model import ThermalParameters, ThermalState


@pytest.fixture
def params() -> ThermalParameters:
    """Default physical constants."""
    return ThermalParameters()


@pytest.fixture
def simulator() -> Simulator:
    """Paused simulator with default initial conditions."""
    return Simulator()


@pytest.fixture
def running_simulator(simulator: Simulator) -> Simulator:
    """Default simulator started from pause (state seeded from init fields)."""
    simulator.toggle_running()
    return simulator


@pytest.fixture
def melting_simulator() -> Simulator:
    """Running simulator holding only cold ice in a warm room."""
    sim = Simulator(
        initial=InitialConditions(
            water=0.0, ice=0.1, air=0.0, system_temp=-5.0, outside_temp=25.0
        )
    )
    sim.toggle_running()
    return sim


@pytest.fixture
def freezing_simulator() -> Simulator:
    """Running simulator holding only warm water in a freezer."""
    sim = Simulator(
        initial=InitialConditions(
            water=0.1, ice=0.0, air=0.0, system_temp=5.0, outside_temp=-10.0
        )
    )
    sim.toggle_running()
    return sim


@pytest.fixture
def mixed_state() -> ThermalState:
    """Water above freezing with cold ice floating in it."""
    return ThermalState(
        mass_water=0.5,
        mass_ice=0.1,
        mass_air=0.02,
        temp_water=5.0,
        temp_ice=-3.0,
    )


@pytest.fixture
def test_config() -> BottleSimConfig:
    """Configuration with a fast tick loop."""
    config = BottleSimConfig()
    config.tick_interval = 0.01
    config.broadcast_interval = 0.05
    return config


@pytest.fixture
def controller(test_config: BottleSimConfig) -> SimulationController:
    """Controller with its own default simulator."""
    return SimulationController(config=test_config)
