"""Tests for the WebSocket broadcast manager."""

import json

import pytest

from bottlesim.api.websocket import WebSocketManager
from bottlesim.core.events import reset_event
from bottlesim.simulator.simulation import Simulator


class FakeWebSocket:
    """Minimal stand-in recording what is sent to it."""

    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.sent: list[str] = []
        self._fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self._fail:
            raise ConnectionError("client went away")
        self.sent.append(data)


class TestConnections:
    """Test connection bookkeeping."""

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self) -> None:
        """Connections are accepted, counted and removed."""
        manager = WebSocketManager()
        ws = FakeWebSocket()

        await manager.connect(ws)
        assert ws.accepted
        assert manager.connection_count == 1

        await manager.disconnect(ws)
        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_failed_client_dropped(self) -> None:
        """A client that cannot receive is removed on broadcast."""
        manager = WebSocketManager()
        good = FakeWebSocket()
        bad = FakeWebSocket(fail=True)
        await manager.connect(good)
        await manager.connect(bad)

        await manager.broadcast("snapshot", {"x": 1})

        assert manager.connection_count == 1
        assert len(good.sent) == 1


class TestBroadcasts:
    """Test message content."""

    @pytest.mark.asyncio
    async def test_snapshot_message(self) -> None:
        """Snapshots are sent as JSON with type and timestamp."""
        manager = WebSocketManager()
        ws = FakeWebSocket()
        await manager.connect(ws)

        await manager.broadcast_snapshot(Simulator().snapshot())

        message = json.loads(ws.sent[0])
        assert message["type"] == "snapshot"
        assert message["data"]["mass_ice"] == 0.1
        assert message["data"]["time_scale"] == 1
        assert isinstance(message["timestamp"], str)

    @pytest.mark.asyncio
    async def test_event_message(self) -> None:
        """Events are forwarded by name."""
        manager = WebSocketManager()
        ws = FakeWebSocket()
        await manager.connect(ws)

        await manager.broadcast_event(reset_event())

        message = json.loads(ws.sent[0])
        assert message["type"] == "event"
        assert message["data"]["type"] == "SIMULATION_RESET"

    @pytest.mark.asyncio
    async def test_no_clients_is_noop(self) -> None:
        """Broadcasting with nobody listening does nothing."""
        manager = WebSocketManager()
        await manager.broadcast("snapshot", {})
        assert manager.connection_count == 0
