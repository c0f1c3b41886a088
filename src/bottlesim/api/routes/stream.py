"""Real-time WebSocket stream."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..websocket import encode_message

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def simulation_stream(websocket: WebSocket):
    """Push snapshots and controller events to the client.

    The current snapshot is sent immediately after the connection opens.
    """
    from ..app import app_state

    manager = app_state.ws_manager
    await manager.connect(websocket)
    try:
        if app_state.controller is not None:
            snapshot = app_state.controller.snapshot()
            await websocket.send_text(encode_message("snapshot", snapshot.to_dict()))
        while True:
            # Keep the connection open; client messages are not used
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
