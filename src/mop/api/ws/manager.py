from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

from mop.application.ports.notifier import ClientRole

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self._connections: dict[ClientRole, set[WebSocket]] = defaultdict(set)
        self._socket_to_role: dict[WebSocket, ClientRole] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket, role: ClientRole) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[role].add(websocket)
            self._socket_to_role[websocket] = role
        logger.info("ws_client_connected", extra={"role": role.value})

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            role = self._socket_to_role.pop(websocket, None)
            if role is None:
                return
            sockets = self._connections.get(role)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(role, None)
        logger.info("ws_client_disconnected", extra={"role": role.value})

    def connection_count(self, role: ClientRole) -> int:
        return len(self._connections.get(role, set()))

    async def broadcast(self, role: ClientRole, message_json_str: str) -> None:
        async with self._lock:
            targets = list(self._connections.get(role, set()))

        stale: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(message_json_str)
            except Exception:
                stale.append(websocket)

        for websocket in stale:
            await self.unregister(websocket)
