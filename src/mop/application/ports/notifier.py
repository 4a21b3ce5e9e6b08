from __future__ import annotations

from enum import Enum
from typing import Any, Protocol


class ClientRole(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"


class LiveNotifier(Protocol):
    async def broadcast(self, role: ClientRole, event: str, payload: dict[str, Any]) -> None: ...
