from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mop.api.ws.manager import ConnectionManager
from mop.application.ports.notifier import ClientRole

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    raw_role = websocket.query_params.get("role", "")
    try:
        role = ClientRole(raw_role.lower())
    except ValueError:
        await websocket.close(code=1008, reason="role must be 'customer' or 'restaurant'")
        return

    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(websocket=websocket, role=role)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.unregister(websocket)
    except Exception:
        logger.exception("ws_connection_error", extra={"role": role.value})
        await manager.unregister(websocket)
