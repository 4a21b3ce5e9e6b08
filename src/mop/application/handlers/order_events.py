from __future__ import annotations

import asyncio
import logging

from mop.application.dto.events import (
    EventEnvelope,
    OrderCancelledPayload,
    OrderStatusChangedPayload,
)
from mop.application.dto.responses import OrderResponse
from mop.application.mappers.event_envelope import (
    ORDER_CANCELLED_EVENT,
    ORDER_CREATED_EVENT,
    ORDER_STATUS_CHANGED_EVENT,
    order_payload,
    parse_envelope,
)
from mop.application.mappers.order_mapper import from_order_response
from mop.application.ports.notifier import ClientRole, LiveNotifier
from mop.application.use_cases.context import TraceContext
from mop.application.use_cases.ingest_order import IngestOrder

logger = logging.getLogger(__name__)

NEW_ORDER_NOTIFICATION = "new_order"
STATUS_UPDATE_NOTIFICATION = "order_status_update"
ORDER_CANCELLED_NOTIFICATION = "order_cancelled"


def _log_handled(envelope: EventEnvelope, order_number: str, **extra: object) -> None:
    logger.info(
        "order_event_handled",
        extra={
            "event_type": envelope.event_type,
            "order_number": order_number,
            **TraceContext.from_envelope(envelope).origin_log_fields(),
            **extra,
        },
    )


class OrderCreatedHandler:
    """Persist-and-promote for ``orders.created``; notifies restaurants only on a real ingestion."""

    def __init__(self, ingest_order: IngestOrder, notifier: LiveNotifier) -> None:
        self._ingest_order = ingest_order
        self._notifier = notifier

    async def handle(self, message: str) -> None:
        envelope = parse_envelope(message, ORDER_CREATED_EVENT)
        order = from_order_response(OrderResponse.model_validate(envelope.payload))
        result = await asyncio.to_thread(self._ingest_order.execute, order)
        _log_handled(envelope, str(order.order_number), ingested=result.ingested)
        if not result.ingested:
            return
        await self._notifier.broadcast(
            ClientRole.RESTAURANT,
            NEW_ORDER_NOTIFICATION,
            order_payload(result.order),
        )


class OrderStatusChangedHandler:
    def __init__(self, notifier: LiveNotifier) -> None:
        self._notifier = notifier

    async def handle(self, message: str) -> None:
        envelope = parse_envelope(message, ORDER_STATUS_CHANGED_EVENT)
        payload = OrderStatusChangedPayload.model_validate(envelope.payload)
        _log_handled(envelope, payload.orderNumber, new_status=payload.newStatus)
        await self._notifier.broadcast(
            ClientRole.CUSTOMER,
            STATUS_UPDATE_NOTIFICATION,
            payload.model_dump(mode="json", exclude_none=True),
        )


class OrderCancelledHandler:
    def __init__(self, notifier: LiveNotifier) -> None:
        self._notifier = notifier

    async def handle(self, message: str) -> None:
        envelope = parse_envelope(message, ORDER_CANCELLED_EVENT)
        payload = OrderCancelledPayload.model_validate(envelope.payload)
        _log_handled(envelope, payload.orderNumber)
        await self._notifier.broadcast(
            ClientRole.RESTAURANT,
            ORDER_CANCELLED_NOTIFICATION,
            payload.model_dump(mode="json", exclude_none=True),
        )
