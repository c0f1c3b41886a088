"""Lumped thermal simulation of a bottle holding water, ice and air."""

from .simulation import InitialConditions, SimulationSnapshot, Simulator, TimeScale
from .thermal_model import ThermalParameters, ThermalState

__all__ = [
    "InitialConditions",
    "SimulationSnapshot",
    "Simulator",
    "ThermalParameters",
    "ThermalState",
    "TimeScale",
]
