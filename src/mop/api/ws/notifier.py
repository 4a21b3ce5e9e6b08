from __future__ import annotations

import json
from typing import Any

from mop.api.ws.manager import ConnectionManager
from mop.application.ports.notifier import ClientRole, LiveNotifier


class WebSocketNotifier(LiveNotifier):
    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    async def broadcast(self, role: ClientRole, event: str, payload: dict[str, Any]) -> None:
        message = json.dumps({"event": event, "payload": payload}, separators=(",", ":"))
        await self._manager.broadcast(role=role, message_json_str=message)
