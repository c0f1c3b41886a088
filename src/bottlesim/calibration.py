"""Estimate the bottle's heat transfer coefficient from a measured trace.

Physics background:
- Without a phase change the bottle contents follow Newton's law:
  dT/dt = U * (T_outside - T) / C
  where C = m_water * c_water + m_ice * c_ice is the effective heat capacity.

- The solution is a first-order response:
  T(t) = T_eq + (T_0 - T_eq) * exp(-t/tau)
  with tau = C / U.

- Fitting an exponential to a logged warming or cooling curve gives tau, and
  thus U = C / tau. When the outside temperature is known, U can also be
  estimated directly from the observed rates, which is a useful cross-check.

Traces that cross 0°C include latent heat and make U look too small. Only
use single-phase segments (all water above 0°C or all ice below it).
"""

import argparse
import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np
import yaml
from scipy.optimize import curve_fit

from .simulator.thermal_model import (
    CAPACITY_EPSILON,
    DEFAULT_PARAMETERS,
    FREEZING_POINT_C,
    ThermalParameters,
    ThermalState,
)

logger = logging.getLogger(__name__)

# Fewer distinct readings than this cannot constrain three fit parameters
MIN_POINTS = 5

# Intervals closer than this to the outside temperature are too noisy for rates
MIN_DELTA_C = 1.0


@dataclass
class Sample:
    """Single temperature reading."""

    time_s: float
    temp_c: float


@dataclass
class FitResult:
    """Parameters of the fitted exponential response."""

    t_equilibrium: float
    t_initial: float
    tau: float
    converged: bool


@dataclass
class CalibrationResult:
    """Outcome of a calibration run."""

    fit: FitResult
    heat_capacity: float  # J/K
    coefficient_from_tau: float  # J/(s·K)
    coefficient_from_rate: Optional[float]  # J/(s·K), needs outside temp
    num_points: int
    duration_s: float
    phase_change: bool

    @property
    def heat_transfer_coefficient(self) -> float:
        """Recommended U: the rate-based value when available."""
        if self.coefficient_from_rate is not None:
            return self.coefficient_from_rate
        return self.coefficient_from_tau


def parse_csv(filepath: Union[str, Path]) -> list[Sample]:
    """Read a temperature log.

    The file needs a ``temp_c`` column and either ``time_s`` (seconds) or an
    ISO 8601 ``timestamp`` column. Malformed rows are skipped.
    """
    samples: list[Sample] = []
    base_time: Optional[float] = None

    with open(filepath, "r", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                temp = float(row["temp_c"])
                if row.get("time_s"):
                    time_s = float(row["time_s"])
                else:
                    stamp = datetime.fromisoformat(
                        row["timestamp"].replace("Z", "+00:00")
                    ).timestamp()
                    if base_time is None:
                        base_time = stamp
                    time_s = stamp - base_time
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed row: %s", row)
                continue
            samples.append(Sample(time_s=time_s, temp_c=temp))

    logger.info("Loaded %d samples from %s", len(samples), filepath)
    return samples


def deduplicate_by_temperature(samples: list[Sample]) -> list[Sample]:
    """Drop consecutive readings with an unchanged temperature."""
    if not samples:
        return []

    result = [samples[0]]
    for sample in samples[1:]:
        if sample.temp_c != result[-1].temp_c:
            result.append(sample)
    return result


def exponential_response(
    t: np.ndarray, t_eq: float, t_0: float, tau: float
) -> np.ndarray:
    """T(t) = T_eq + (T_0 - T_eq) * exp(-t/tau)"""
    return t_eq + (t_0 - t_eq) * np.exp(-t / tau)


def fit_time_constant(
    times: np.ndarray,
    temps: np.ndarray,
    outside_temp: Optional[float] = None,
) -> FitResult:
    """Fit the exponential response to a temperature curve.

    Args:
        times: Sample times in seconds.
        temps: Temperatures in Celsius.
        outside_temp: Known environment temperature, used as the starting
            guess for the equilibrium.

    Returns:
        Fitted parameters. If the fit fails the initial guesses are returned
        with converged=False.
    """
    if len(times) < 3:
        raise ValueError("Need at least 3 samples to fit a time constant")

    t = times - times[0]

    lower = [-100.0, temps.min() - 10.0, 1.0]
    upper = [100.0, temps.max() + 10.0, 1e6]

    t_eq_guess = outside_temp if outside_temp is not None else temps[-1]
    tau_guess = t[-1] / 3  # Roughly 3 time constants to mostly settle
    p0 = np.clip([t_eq_guess, temps[0], tau_guess], lower, upper)

    try:
        popt, _ = curve_fit(
            exponential_response,
            t,
            temps,
            p0=p0,
            bounds=(lower, upper),
            maxfev=5000,
        )
    except (RuntimeError, ValueError) as e:
        logger.warning("Curve fit failed: %s", e)
        return FitResult(
            t_equilibrium=float(p0[0]),
            t_initial=float(p0[1]),
            tau=float(p0[2]),
            converged=False,
        )

    return FitResult(
        t_equilibrium=float(popt[0]),
        t_initial=float(popt[1]),
        tau=float(popt[2]),
        converged=True,
    )


def coefficient_from_rate(
    times: np.ndarray,
    temps: np.ndarray,
    outside_temp: float,
    heat_capacity: float,
) -> Optional[float]:
    """Average U from instantaneous rates of change.

    From dT/dt = U * (T_outside - T) / C:
        U = C * |dT/dt| / |T_outside - T|

    Returns:
        U in J/(s·K), or None if no interval was usable.
    """
    dt = np.diff(times)
    d_temp = np.diff(temps)
    midpoints = temps[:-1] + d_temp / 2
    delta = outside_temp - midpoints

    usable = (dt > 0) & (np.abs(delta) >= MIN_DELTA_C)
    if not np.any(usable):
        return None

    estimates = heat_capacity * np.abs(d_temp[usable] / dt[usable]) / np.abs(delta[usable])
    return float(np.mean(estimates))


def calibrate(
    samples: list[Sample],
    water_kg: float,
    ice_kg: float = 0.0,
    outside_temp: Optional[float] = None,
    params: Optional[ThermalParameters] = None,
) -> CalibrationResult:
    """Estimate the heat transfer coefficient from a temperature trace.

    Args:
        samples: Readings of the bottle contents over time.
        water_kg: Mass of liquid water in the bottle.
        ice_kg: Mass of ice in the bottle.
        outside_temp: Environment temperature, enables the rate-based estimate.
        params: Physical constants. Uses defaults if None.

    Returns:
        Fitted curve and coefficient estimates.

    Raises:
        ValueError: If there are too few distinct readings or no heat capacity.
    """
    p = params or DEFAULT_PARAMETERS

    distinct = deduplicate_by_temperature(samples)
    if len(distinct) < MIN_POINTS:
        raise ValueError(
            f"Need at least {MIN_POINTS} distinct readings, got {len(distinct)}"
        )

    capacity = ThermalState(mass_water=water_kg, mass_ice=ice_kg).heat_capacity(p)
    if capacity < CAPACITY_EPSILON:
        raise ValueError("Bottle contents have no heat capacity")

    times = np.array([s.time_s for s in distinct])
    temps = np.array([s.temp_c for s in distinct])

    phase_change = bool(
        (water_kg > 0.0 and ice_kg > 0.0)
        or (temps.min() < FREEZING_POINT_C < temps.max())
    )
    if phase_change:
        logger.warning(
            "Trace includes a phase change; latent heat will bias the estimate low"
        )

    fit = fit_time_constant(times, temps, outside_temp)

    rate_estimate = None
    if outside_temp is not None:
        rate_estimate = coefficient_from_rate(times, temps, outside_temp, capacity)

    return CalibrationResult(
        fit=fit,
        heat_capacity=capacity,
        coefficient_from_tau=capacity / fit.tau,
        coefficient_from_rate=rate_estimate,
        num_points=len(distinct),
        duration_s=float(times[-1] - times[0]),
        phase_change=phase_change,
    )


def format_report(result: CalibrationResult) -> str:
    """Human-readable summary plus a config snippet."""
    fit = result.fit
    lines = [
        f"Samples used: {result.num_points} over {result.duration_s:.1f}s",
        f"Heat capacity: {result.heat_capacity:.1f} J/K",
        f"Fitted curve: {fit.t_initial:.2f}°C → {fit.t_equilibrium:.2f}°C, "
        f"τ = {fit.tau:.1f}s" + ("" if fit.converged else " (fit did not converge)"),
        f"U from time constant: {result.coefficient_from_tau:.3f} J/(s·K)",
    ]
    if result.coefficient_from_rate is not None:
        lines.append(
            f"U from observed rates: {result.coefficient_from_rate:.3f} J/(s·K)"
        )
    if result.phase_change:
        lines.append("Warning: trace crosses 0°C, estimate is unreliable")

    snippet = yaml.safe_dump(
        {"physics": {"heat_transfer_coefficient": round(result.heat_transfer_coefficient, 3)}},
        default_flow_style=False,
    )
    lines.extend(["", "Suggested config:", snippet.rstrip()])
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> None:
    """Command line entry point."""
    parser = argparse.ArgumentParser(
        description="Estimate the bottle heat transfer coefficient from a temperature log"
    )
    parser.add_argument("csv_file", type=Path, help="Log with temp_c and time_s/timestamp")
    parser.add_argument("--water", type=float, default=0.5, help="Water mass in kg (default: 0.5)")
    parser.add_argument("--ice", type=float, default=0.0, help="Ice mass in kg (default: 0)")
    parser.add_argument("--outside-temp", type=float, default=None, help="Environment temperature in °C")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    samples = parse_csv(args.csv_file)
    try:
        result = calibrate(
            samples,
            water_kg=args.water,
            ice_kg=args.ice,
            outside_temp=args.outside_temp,
        )
    except ValueError as e:
        parser.exit(1, f"Calibration failed: {e}\n")

    print(format_report(result))


if __name__ == "__main__":
    main()
