"""Configuration management for the bottle thermal simulation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .simulator.simulation import InitialConditions
from .simulator.thermal_model import ThermalParameters

logger = logging.getLogger(__name__)


def _load_dotenv(env_path: Path) -> None:
    """Load environment variables from .env file."""
    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                # Only set if not already in environment
                if key not in os.environ:
                    os.environ[key] = value


@dataclass
class InitialConditionsConfig:
    """Seed values for the simulation (kg and °C)."""

    water_kg: float = 0.5
    ice_kg: float = 0.1
    air_kg: float = 0.02
    system_temp_c: float = 5.0
    outside_temp_c: float = 25.0


@dataclass
class PhysicsConfig:
    """Tunable physical constants."""

    heat_transfer_coefficient: float = 5.0  # J/(s·K)


@dataclass
class BottleSimConfig:
    """Main configuration class for the simulation service.

    All temperatures are in Celsius, masses in kilograms and
    intervals in seconds.
    """

    initial: InitialConditionsConfig = field(default_factory=InitialConditionsConfig)
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)

    # Control loop tick (wall-clock seconds between step() calls)
    tick_interval: float = 0.05

    # How often snapshots are pushed to WebSocket clients
    broadcast_interval: float = 0.5

    # Start running as soon as the service is up
    autostart: bool = False

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    def to_initial_conditions(self) -> InitialConditions:
        """Seed values in the form the simulator takes."""
        return InitialConditions(
            water=self.initial.water_kg,
            ice=self.initial.ice_kg,
            air=self.initial.air_kg,
            system_temp=self.initial.system_temp_c,
            outside_temp=self.initial.outside_temp_c,
        )

    def to_thermal_parameters(self) -> ThermalParameters:
        """Physical constants in the form the simulator takes."""
        return ThermalParameters(
            heat_transfer_coefficient=self.physics.heat_transfer_coefficient,
        )


def load_config(
    config_path: Path | None = None,
    env: str | None = None,
) -> BottleSimConfig:
    """Load configuration from YAML files and environment variables.

    Configuration is loaded with the following priority (highest to lowest):
    1. Environment variables (BOTTLESIM_*)
    2. Environment-specific config (development.yaml, production.yaml)
    3. Default config (default.yaml)
    4. Hardcoded defaults

    Args:
        config_path: Path to config directory. Defaults to project config/.
        env: Environment name. Defaults to BOTTLESIM_ENV or "development".

    Returns:
        Loaded BottleSimConfig instance.
    """
    config = BottleSimConfig()

    # Determine config directory
    if config_path is None:
        # Try relative to this file, then fall back to cwd
        module_dir = Path(__file__).parent
        config_path = module_dir.parent.parent / "config"
        if not config_path.exists():
            config_path = Path.cwd() / "config"

    # Load .env file from project root (config_path/../.env)
    _load_dotenv(config_path.parent / ".env")

    default_path = config_path / "default.yaml"
    if default_path.exists():
        config = _merge_yaml(config, default_path)
        logger.debug("Loaded default config from %s", default_path)

    if env is None:
        env = os.environ.get("BOTTLESIM_ENV", "development")

    env_config_path = config_path / f"{env}.yaml"
    if env_config_path.exists():
        config = _merge_yaml(config, env_config_path)
        logger.debug("Loaded %s config from %s", env, env_config_path)

    # Override with environment variables (highest priority)
    config = _apply_env_overrides(config)
    config = _validate(config)

    logger.info("Configuration loaded for environment: %s", env)
    return config


def _merge_yaml(config: BottleSimConfig, path: Path) -> BottleSimConfig:
    """Merge YAML file into config."""
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return config

    if "initial" in data:
        init = data["initial"]
        config.initial.water_kg = init.get("water_kg", config.initial.water_kg)
        config.initial.ice_kg = init.get("ice_kg", config.initial.ice_kg)
        config.initial.air_kg = init.get("air_kg", config.initial.air_kg)
        config.initial.system_temp_c = init.get("system_temp_c", config.initial.system_temp_c)
        config.initial.outside_temp_c = init.get("outside_temp_c", config.initial.outside_temp_c)

    if "physics" in data:
        physics = data["physics"]
        config.physics.heat_transfer_coefficient = physics.get(
            "heat_transfer_coefficient", config.physics.heat_transfer_coefficient
        )

    if "simulation" in data:
        sim = data["simulation"]
        config.tick_interval = sim.get("tick_interval", config.tick_interval)
        config.broadcast_interval = sim.get("broadcast_interval", config.broadcast_interval)
        config.autostart = sim.get("autostart", config.autostart)

    if "api" in data:
        api = data["api"]
        config.api_host = api.get("host", config.api_host)
        config.api_port = api.get("port", config.api_port)

    config.log_level = data.get("log_level", config.log_level)

    return config


def _apply_env_overrides(config: BottleSimConfig) -> BottleSimConfig:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, str | None, type[Any]]] = {
        "BOTTLESIM_INIT_WATER": ("initial", "water_kg", float),
        "BOTTLESIM_INIT_ICE": ("initial", "ice_kg", float),
        "BOTTLESIM_INIT_AIR": ("initial", "air_kg", float),
        "BOTTLESIM_INIT_SYSTEM_TEMP": ("initial", "system_temp_c", float),
        "BOTTLESIM_INIT_OUTSIDE_TEMP": ("initial", "outside_temp_c", float),
        "BOTTLESIM_HEAT_TRANSFER_COEFFICIENT": ("physics", "heat_transfer_coefficient", float),
        "BOTTLESIM_TICK_INTERVAL": ("tick_interval", None, float),
        "BOTTLESIM_BROADCAST_INTERVAL": ("broadcast_interval", None, float),
        "BOTTLESIM_AUTOSTART": ("autostart", None, _parse_bool),
        "BOTTLESIM_API_HOST": ("api_host", None, str),
        "BOTTLESIM_API_PORT": ("api_port", None, int),
        "BOTTLESIM_LOG_LEVEL": ("log_level", None, str),
    }

    for env_var, (attr, sub_attr, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                converted = converter(value)
                if sub_attr:
                    setattr(getattr(config, attr), sub_attr, converted)
                else:
                    setattr(config, attr, converted)
                logger.debug("Applied env override: %s=%s", env_var, converted)
            except (ValueError, TypeError) as e:
                logger.warning("Invalid env var %s=%s: %s", env_var, value, e)

    return config


def _parse_bool(value: str) -> bool:
    """Parse boolean from string."""
    return value.lower() in ("true", "1", "yes", "on")


def _validate(config: BottleSimConfig) -> BottleSimConfig:
    """Correct values the simulation cannot run with."""
    for name in ("water_kg", "ice_kg", "air_kg"):
        value = getattr(config.initial, name)
        if value < 0:
            logger.warning("Negative initial %s=%s, using 0", name, value)
            setattr(config.initial, name, 0.0)

    defaults = BottleSimConfig()
    for name in ("tick_interval", "broadcast_interval"):
        value = getattr(config, name)
        if value <= 0:
            fallback = getattr(defaults, name)
            logger.warning("Non-positive %s=%s, using %s", name, value, fallback)
            setattr(config, name, fallback)

    if config.physics.heat_transfer_coefficient <= 0:
        logger.warning(
            "Non-positive heat_transfer_coefficient=%s, using %s",
            config.physics.heat_transfer_coefficient,
            defaults.physics.heat_transfer_coefficient,
        )
        config.physics.heat_transfer_coefficient = defaults.physics.heat_transfer_coefficient

    return config
