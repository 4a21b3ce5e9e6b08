from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from mop.application.dto.events import EventEnvelope
from mop.application.mappers.order_mapper import to_order_response
from mop.domain.order.entities import Order
from mop.domain.order.events import OrderCancelled, OrderStatusChanged

ORDER_CREATED_EVENT = "order.created"
ORDER_STATUS_CHANGED_EVENT = "order.status_changed"
ORDER_CANCELLED_EVENT = "order.cancelled"


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    restaurant_id: str,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "restaurant_id": restaurant_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def order_payload(order: Order) -> dict[str, Any]:
    return to_order_response(order).model_dump(mode="json", exclude_none=True)


def serialize_order_created_event(
    *,
    order: Order,
    occurred_at: datetime,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=ORDER_CREATED_EVENT,
        occurred_at=occurred_at,
        restaurant_id=str(order.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload=order_payload(order),
    )


def serialize_status_changed_event(
    *,
    event: OrderStatusChanged,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=ORDER_STATUS_CHANGED_EVENT,
        occurred_at=event.occurred_at,
        restaurant_id=str(event.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "orderNumber": str(event.order_number),
            "customerId": str(event.customer_id),
            "restaurantId": str(event.restaurant_id),
            "oldStatus": event.old_status.value,
            "newStatus": event.new_status.value,
            "restaurantNote": event.restaurant_note,
            "event": event.description,
            "timestamp": event.occurred_at.isoformat(),
        },
    )


def serialize_cancelled_event(
    *,
    event: OrderCancelled,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=ORDER_CANCELLED_EVENT,
        occurred_at=event.occurred_at,
        restaurant_id=str(event.restaurant_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "orderNumber": str(event.order_number),
            "customerId": str(event.customer_id),
            "restaurantId": str(event.restaurant_id),
            "event": event.description,
            "timestamp": event.occurred_at.isoformat(),
        },
    )


def parse_envelope(message: str, expected_type: str) -> EventEnvelope:
    envelope = EventEnvelope.model_validate_json(message)
    if envelope.event_type != expected_type:
        raise UnexpectedEventTypeError(
            f"expected event_type={expected_type}, got {envelope.event_type}"
        )
    return envelope


class UnexpectedEventTypeError(Exception):
    pass
