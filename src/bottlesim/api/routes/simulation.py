"""Simulation control API routes."""

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException

from ..schemas import SimulationStatus

if TYPE_CHECKING:
    from ...core.controller import SimulationController

router = APIRouter()


def get_controller() -> "SimulationController":
    """Get the controller from app state - injected at runtime."""
    from ..app import app_state
    if app_state.controller is None:
        raise HTTPException(status_code=503, detail="Controller not initialized")
    return app_state.controller


def _status(controller: "SimulationController") -> dict:
    return asdict(SimulationStatus.from_snapshot(controller.snapshot()))


@router.get("/")
async def get_simulation_status():
    """Get current thermal state, clock and run settings."""
    return _status(get_controller())


@router.post("/toggle")
async def toggle_running():
    """Start or pause the simulation.

    Starting from pause reseeds the state from the initial conditions.
    """
    controller = get_controller()
    running = await controller.toggle_running()
    return {
        "running": running,
        "message": "Simulation started" if running else "Simulation paused",
        "status": _status(controller),
    }


@router.post("/reset")
async def reset_simulation():
    """Reseed from the initial conditions, pause and rewind to t=0."""
    controller = get_controller()
    await controller.reset()
    return {
        "message": "Simulation reset to initial conditions",
        "status": _status(controller),
    }


@router.post("/speed")
async def cycle_speed():
    """Advance the speed multiplier (1 → 2 → 5 → 10 → 1)."""
    controller = get_controller()
    scale = await controller.cycle_time_scale()
    return {
        "time_scale": scale,
        "message": f"Speed set to x{scale}",
    }
