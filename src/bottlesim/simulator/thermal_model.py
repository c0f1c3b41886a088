"""Lumped thermal model for a closed bottle holding water, ice and air.

The ice/water sub-system is treated as spatially uniform and exchanges heat
with the environment through a single overall coefficient U. Each call to
apply_heat() spends one tick's energy budget in a fixed priority order:
sensible heat brings a phase to 0°C before latent heat melts or freezes it,
and only then is the remaining energy used to change the temperature of the
other phase.

All temperatures are in Celsius, masses in kilograms, energies in Joules.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Below this effective heat capacity (J/K) the equivalent temperature is 0
CAPACITY_EPSILON: float = 1e-9

# Water must be this close to 0°C before it starts to freeze
FREEZE_TOLERANCE_C: float = 1e-3

# Phase residue (kg) left behind by a melt/freeze stage is transferred whole
MASS_EPSILON: float = 1e-12

FREEZING_POINT_C: float = 0.0


@dataclass
class ThermalParameters:
    """Physical constants of the model.

    Defaults are textbook values for water and ice. The heat transfer
    coefficient is a lumped, tunable value for the bottle wall.
    """

    specific_heat_water: float = 4186.0  # J/(kg·K)
    specific_heat_ice: float = 2100.0  # J/(kg·K)
    latent_heat_fusion: float = 334000.0  # J/kg
    heat_transfer_coefficient: float = 5.0  # J/(s·K)


DEFAULT_PARAMETERS = ThermalParameters()


@dataclass
class ThermalState:
    """Masses and temperatures of the bottle contents.

    Air is recorded but thermally inert: it never exchanges mass and has no
    sensible heat term.
    """

    mass_water: float = 0.0
    mass_ice: float = 0.0
    mass_air: float = 0.0
    temp_water: float = 0.0
    temp_ice: float = 0.0

    @property
    def total_mass(self) -> float:
        """Water + ice + air in kg."""
        return self.mass_water + self.mass_ice + self.mass_air

    def heat_capacity(self, params: Optional[ThermalParameters] = None) -> float:
        """Effective heat capacity of the ice/water sub-system in J/K."""
        p = params or DEFAULT_PARAMETERS
        return (
            self.mass_ice * p.specific_heat_ice
            + self.mass_water * p.specific_heat_water
        )

    def equivalent_temperature(
        self, params: Optional[ThermalParameters] = None
    ) -> float:
        """Sensible-heat-weighted mean temperature of ice and water.

        Computed fresh from the current masses on every call. Returns 0 when
        there is (almost) nothing to weight.

        Args:
            params: Physical constants. Uses defaults if None.

        Returns:
            Equivalent temperature in Celsius.
        """
        p = params or DEFAULT_PARAMETERS
        c_eff = self.heat_capacity(p)
        if abs(c_eff) < CAPACITY_EPSILON:
            return 0.0
        sensible_ice = self.mass_ice * p.specific_heat_ice * self.temp_ice
        sensible_water = self.mass_water * p.specific_heat_water * self.temp_water
        return (sensible_ice + sensible_water) / c_eff

    def enforce_bounds(self) -> None:
        """Clamp temperatures to the range their phase allows.

        Ice is never above 0°C, water never below; an absent phase has its
        temperature pinned to 0. Masses are floored at 0.
        """
        self.mass_water = max(0.0, self.mass_water)
        self.mass_ice = max(0.0, self.mass_ice)
        self.mass_air = max(0.0, self.mass_air)

        if self.mass_ice > 0.0:
            self.temp_ice = min(FREEZING_POINT_C, self.temp_ice)
        else:
            self.temp_ice = FREEZING_POINT_C

        if self.mass_water > 0.0:
            self.temp_water = max(FREEZING_POINT_C, self.temp_water)
        else:
            self.temp_water = FREEZING_POINT_C


def heat_flow(
    state: ThermalState,
    outside_temp: float,
    dt: float,
    params: Optional[ThermalParameters] = None,
) -> float:
    """Energy delivered from the environment over dt.

    Args:
        state: Current bottle contents.
        outside_temp: Environment temperature in Celsius.
        dt: Simulated interval in seconds.
        params: Physical constants. Uses defaults if None.

    Returns:
        Joules; positive heats the bottle, negative cools it.
    """
    p = params or DEFAULT_PARAMETERS
    sys_temp = state.equivalent_temperature(p)
    return p.heat_transfer_coefficient * (outside_temp - sys_temp) * dt


def apply_heating(state: ThermalState, q: float, params: ThermalParameters) -> float:
    """Spend a positive energy budget: warm ice, melt it, warm water.

    Args:
        state: Bottle contents, mutated in place.
        q: Joules to absorb (> 0).
        params: Physical constants.

    Returns:
        Joules that no stage could absorb (no ice and no water).
    """
    # Warm ice up to the melting point
    if q > 0.0 and state.mass_ice > 0.0 and state.temp_ice < FREEZING_POINT_C:
        need = state.mass_ice * params.specific_heat_ice * (FREEZING_POINT_C - state.temp_ice)
        if q >= need:
            state.temp_ice = FREEZING_POINT_C
            q -= need
        else:
            state.temp_ice += q / (state.mass_ice * params.specific_heat_ice)
            q = 0.0

    # Melt ice at 0°C
    if q > 0.0 and state.mass_ice > 0.0:
        melt_mass = q / params.latent_heat_fusion
        if melt_mass >= state.mass_ice - MASS_EPSILON:
            melt_mass = state.mass_ice
            q = max(0.0, q - melt_mass * params.latent_heat_fusion)
        else:
            q = 0.0
        state.mass_ice -= melt_mass
        state.mass_water += melt_mass

    # Melted mass has joined the water; warm the combined water
    if q > 0.0 and state.mass_water > 0.0:
        state.temp_water += q / (state.mass_water * params.specific_heat_water)
        q = 0.0

    return q


def apply_cooling(state: ThermalState, q_abs: float, params: ThermalParameters) -> float:
    """Spend a cooling budget: cool water, freeze it, cool ice.

    Args:
        state: Bottle contents, mutated in place.
        q_abs: Joules to remove (> 0).
        params: Physical constants.

    Returns:
        Joules that no stage could release (no ice and no water).
    """
    # Cool water down to the freezing point
    if q_abs > 0.0 and state.mass_water > 0.0 and state.temp_water > FREEZING_POINT_C:
        need = state.mass_water * params.specific_heat_water * (state.temp_water - FREEZING_POINT_C)
        if q_abs >= need:
            state.temp_water = FREEZING_POINT_C
            q_abs -= need
        else:
            state.temp_water -= q_abs / (state.mass_water * params.specific_heat_water)
            q_abs = 0.0

    # Freeze water sitting at 0°C
    if (
        q_abs > 0.0
        and state.mass_water > 0.0
        and abs(state.temp_water - FREEZING_POINT_C) < FREEZE_TOLERANCE_C
    ):
        freeze_mass = q_abs / params.latent_heat_fusion
        if freeze_mass >= state.mass_water - MASS_EPSILON:
            freeze_mass = state.mass_water
            q_abs = max(0.0, q_abs - freeze_mass * params.latent_heat_fusion)
        else:
            q_abs = 0.0
        state.mass_water -= freeze_mass
        state.mass_ice += freeze_mass

    # New ice has joined the ice; cool the combined ice
    if q_abs > 0.0 and state.mass_ice > 0.0:
        state.temp_ice -= q_abs / (state.mass_ice * params.specific_heat_ice)
        q_abs = 0.0

    return q_abs


def apply_heat(
    state: ThermalState,
    q: float,
    params: Optional[ThermalParameters] = None,
) -> None:
    """Apply one tick's net heat to the bottle contents.

    Positive q runs the heating ladder, negative q the cooling ladder, zero
    leaves the state untouched. Bounds are enforced afterwards to absorb
    floating-point drift from the staged arithmetic.

    Args:
        state: Bottle contents, mutated in place.
        q: Net Joules delivered by the environment.
        params: Physical constants. Uses defaults if None.
    """
    p = params or DEFAULT_PARAMETERS
    if q > 0.0:
        leftover = apply_heating(state, q, p)
    elif q < 0.0:
        leftover = apply_cooling(state, -q, p)
    else:
        leftover = 0.0

    if leftover > 0.0:
        logger.debug("%.3f J not absorbed: bottle holds no ice or water", leftover)

    state.enforce_bounds()
