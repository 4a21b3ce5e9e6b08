from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class EventEnvelope(BaseModel):
    event_id: str
    event_type: str
    occurred_at: datetime
    request_id: str | None = None
    trace_id: str | None = None
    restaurant_id: str
    payload: dict[str, Any] = Field(default_factory=dict)


class OrderStatusChangedPayload(BaseModel):
    orderNumber: str
    customerId: str
    restaurantId: str
    oldStatus: str
    newStatus: str
    restaurantNote: str | None = None
    event: str
    timestamp: datetime


class OrderCancelledPayload(BaseModel):
    orderNumber: str
    customerId: str
    restaurantId: str
    event: str
    timestamp: datetime
