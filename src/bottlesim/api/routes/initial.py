"""Initial conditions API routes."""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from ..schemas import InitialConditionsResponse, InitialConditionsUpdate
from .simulation import get_controller

router = APIRouter()


@router.get("/")
async def get_initial_conditions():
    """Get the seed values used on the next start or reset."""
    controller = get_controller()
    return asdict(InitialConditionsResponse(**controller.initial_conditions()))


@router.patch("/")
async def update_initial_conditions(update: InitialConditionsUpdate):
    """Update seed values.

    Masses are clamped to be non-negative. Changes take effect the next
    time the simulation is started from pause or reset.
    """
    controller = get_controller()
    changes = {k: v for k, v in asdict(update).items() if v is not None}

    try:
        values = await controller.update_initial_conditions(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "updated": sorted(changes),
        "initial_conditions": asdict(InitialConditionsResponse(**values)),
    }
