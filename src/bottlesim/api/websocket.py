"""WebSocket manager for real-time updates."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from ..core.events import Event
from ..simulator.simulation import SimulationSnapshot
from .schemas import WebSocketMessage

logger = logging.getLogger(__name__)


def encode_message(message_type: str, data: dict[str, Any]) -> str:
    """Serialize a message to the JSON text sent over the socket."""
    message = WebSocketMessage(
        type=message_type,
        data=data,
        timestamp=datetime.now(),
    )
    message_dict = asdict(message)
    message_dict["timestamp"] = message_dict["timestamp"].isoformat()
    return json.dumps(message_dict)


class WebSocketManager:
    """Manages WebSocket connections and broadcasts.

    Handles multiple client connections and broadcasts simulation
    snapshots and controller events to all connected clients.
    """

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        """Number of active WebSocket connections."""
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new WebSocket connection.

        Args:
            websocket: The WebSocket connection to register.
        """
        await websocket.accept()
        async with self._lock:
            self._connections.append(websocket)
        logger.info(
            "WebSocket connected. Total connections: %d",
            len(self._connections),
        )

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection.

        Args:
            websocket: The WebSocket connection to remove.
        """
        async with self._lock:
            if websocket in self._connections:
                self._connections.remove(websocket)
        logger.info(
            "WebSocket disconnected. Total connections: %d",
            len(self._connections),
        )

    async def broadcast(self, message_type: str, data: dict[str, Any]) -> None:
        """Broadcast message to all connected clients.

        Automatically removes clients that fail to receive the message.

        Args:
            message_type: Type of message (e.g., "snapshot").
            data: Message data dictionary.
        """
        if not self._connections:
            return

        json_message = encode_message(message_type, data)

        async with self._lock:
            disconnected: list[WebSocket] = []
            for connection in self._connections:
                try:
                    await connection.send_text(json_message)
                except Exception as e:
                    logger.warning("Failed to send to WebSocket: %s", e)
                    disconnected.append(connection)

            for conn in disconnected:
                self._connections.remove(conn)

    async def broadcast_snapshot(self, snapshot: SimulationSnapshot) -> None:
        """Broadcast the current simulation state to all clients.

        Args:
            snapshot: Simulator snapshot to send.
        """
        await self.broadcast("snapshot", snapshot.to_dict())

    async def broadcast_event(self, event: Event) -> None:
        """Broadcast a controller event to all clients.

        Args:
            event: Event to forward.
        """
        await self.broadcast("event", event.to_dict())
