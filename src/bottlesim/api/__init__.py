"""FastAPI backend for the bottle simulation."""

from .app import create_app
from .websocket import WebSocketManager

__all__ = [
    "create_app",
    "WebSocketManager",
]
