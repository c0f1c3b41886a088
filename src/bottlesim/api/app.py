"""FastAPI application for the bottle simulation."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import load_config
from ..core.controller import SimulationController
from ..core.events import Event
from .routes import initial, simulation, stream
from .websocket import WebSocketManager

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Application state container."""

    controller: Optional[SimulationController] = None
    ws_manager: WebSocketManager = field(default_factory=WebSocketManager)
    _broadcast_task: Optional[asyncio.Task] = None
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)


app_state = AppState()


async def _event_handler(event: Event) -> None:
    """Forward controller events to WebSocket clients."""
    await app_state.ws_manager.broadcast_event(event)


async def _broadcast_loop() -> None:
    """Background task pushing simulation snapshots to clients."""
    controller = app_state.controller
    if controller is None:
        return

    logger.info("Snapshot broadcast started")
    while not app_state._shutdown_event.is_set():
        try:
            await app_state.ws_manager.broadcast_snapshot(controller.snapshot())
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error("Snapshot broadcast error: %s", e)

        try:
            await asyncio.wait_for(
                app_state._shutdown_event.wait(),
                timeout=controller.config.broadcast_interval,
            )
            break  # Shutdown requested
        except asyncio.TimeoutError:
            pass  # Normal timeout, keep broadcasting

    logger.info("Snapshot broadcast stopped")


async def _shutdown_tasks() -> None:
    """Clean up all background tasks."""
    logger.info("Shutting down simulation API")

    app_state._shutdown_event.set()

    if app_state._broadcast_task is not None:
        app_state._broadcast_task.cancel()
        try:
            await asyncio.wait_for(app_state._broadcast_task, timeout=2.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        app_state._broadcast_task = None

    if app_state.controller is not None:
        await app_state.controller.stop()

    logger.info("Simulation API shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    app_state._shutdown_event = asyncio.Event()

    logger.info("Starting simulation API")

    cfg = load_config()
    app_state.controller = SimulationController(config=cfg)
    app_state.controller.add_event_listener(_event_handler)

    await app_state.controller.start()

    app_state._broadcast_task = asyncio.create_task(
        _broadcast_loop(),
        name="snapshot-broadcast",
    )

    logger.info("Simulation API started")

    try:
        yield
    finally:
        await _shutdown_tasks()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Bottle Thermal Simulation API",
        description="Real-time water/ice/air thermal simulation",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",  # Vite dev server
            "http://localhost:3000",  # Alternative dev port
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(simulation.router, prefix="/api/simulation", tags=["Simulation"])
    app.include_router(initial.router, prefix="/api/initial", tags=["Initial conditions"])
    app.include_router(stream.router, tags=["Stream"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "controller_running": app_state.controller is not None,
            "tick_loop_running": (
                app_state.controller is not None and app_state.controller.is_looping
            ),
            "websocket_connections": app_state.ws_manager.connection_count,
        }

    return app


app = create_app()
