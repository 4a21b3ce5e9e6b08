from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PublishResult:
    topic: str
    key: str
    ok: bool
    message_id: str | None = None
    error: str | None = None


class EventPublisher(Protocol):
    def publish(self, topic: str, key: str, message: str) -> PublishResult: ...


ORDER_CREATED_TOPIC = "orders.created"
ORDER_STATUS_CHANGED_TOPIC = "orders.status_changed"
ORDER_CANCELLED_TOPIC = "orders.cancelled"
