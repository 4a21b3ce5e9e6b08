from __future__ import annotations

import logging
from datetime import datetime, timezone

from mop.application.dto.requests import UpdateOrderStatusRequest
from mop.application.dto.responses import OrderResponse
from mop.application.mappers.event_envelope import serialize_status_changed_event
from mop.application.mappers.order_mapper import to_order_response
from mop.application.metrics.order_lifecycle import record_order_status, record_transition
from mop.application.ports.publisher import ORDER_STATUS_CHANGED_TOPIC, EventPublisher
from mop.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from mop.application.use_cases.context import TraceContext
from mop.application.use_cases.errors import OrderConflictError, OrderNotFoundError
from mop.application.use_cases.publishing import publish_event
from mop.domain.common.ids import OrderNumber, RestaurantId
from mop.domain.order.entities import (
    Order,
    OrderAlreadyCancelledError,
    OrderStatus,
    StatusNotAllowedError,
)
from mop.domain.order.events import OrderStatusChanged

logger = logging.getLogger(__name__)


def _parse_target(order: Order, raw_status: str) -> OrderStatus:
    try:
        return OrderStatus(raw_status.strip().lower())
    except ValueError:
        if order.status == OrderStatus.CANCELLED:
            raise OrderAlreadyCancelledError("Cannot update a cancelled order.") from None
        kind = "delivery" if order.is_delivery else "pickup"
        raise StatusNotAllowedError(
            f"Invalid status for '{kind}' order",
            valid_statuses=[status.value for status in order.valid_statuses],
        ) from None


class UpdateOrderStatus:
    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        restaurant_id: RestaurantId,
        order_number: OrderNumber,
        request_dto: UpdateOrderStatusRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = self._order_repository.get_for_restaurant(order_number, restaurant_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_number}")

        target = _parse_target(order, request_dto.status)
        now = datetime.now(timezone.utc)
        updated = order.change_status(target, request_dto.restaurant_note, now)

        try:
            persisted = self._order_repository.update_status_with_version(
                order=updated,
                expected_version=order.version,
            )
        except OptimisticConcurrencyError as exc:
            raise OrderConflictError(
                f"Order {order_number} was updated concurrently, reload and try again"
            ) from exc

        record_transition(from_status=order.status, to_status=persisted.status)
        record_order_status(persisted)
        logger.info(
            "order_status_changed",
            extra={
                "order_number": persisted.order_number,
                "old_status": order.status.value,
                "new_status": persisted.status.value,
            },
        )

        event = OrderStatusChanged(
            order_number=persisted.order_number,
            restaurant_id=persisted.restaurant_id,
            customer_id=persisted.customer_id,
            old_status=order.status,
            new_status=persisted.status,
            restaurant_note=persisted.restaurant_note,
            occurred_at=now,
        )
        message = serialize_status_changed_event(
            event=event,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        publish_event(
            self._publisher, ORDER_STATUS_CHANGED_TOPIC, str(persisted.order_number), message
        )
        return to_order_response(persisted)
