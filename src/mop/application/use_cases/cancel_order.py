from __future__ import annotations

import logging
from datetime import datetime, timezone

from mop.application.dto.responses import OrderResponse
from mop.application.mappers.event_envelope import serialize_cancelled_event
from mop.application.mappers.order_mapper import to_order_response
from mop.application.metrics.order_lifecycle import record_order_status, record_transition
from mop.application.ports.publisher import ORDER_CANCELLED_TOPIC, EventPublisher
from mop.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from mop.application.use_cases.context import TraceContext
from mop.application.use_cases.errors import OrderConflictError, OrderNotFoundError
from mop.application.use_cases.publishing import publish_event
from mop.domain.common.ids import CustomerId, OrderNumber
from mop.domain.order.events import OrderCancelled

logger = logging.getLogger(__name__)


class CancelOrder:
    def __init__(self, order_repository: OrderRepository, publisher: EventPublisher) -> None:
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        customer_id: CustomerId,
        order_number: OrderNumber,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = self._order_repository.get_for_customer(order_number, customer_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_number}")

        now = datetime.now(timezone.utc)
        cancelled = order.cancel_by_customer(now)
        try:
            persisted = self._order_repository.update_status_with_version(
                order=cancelled,
                expected_version=order.version,
            )
        except OptimisticConcurrencyError as exc:
            raise OrderConflictError(
                f"Order {order_number} was updated concurrently, reload and try again"
            ) from exc

        record_transition(from_status=order.status, to_status=persisted.status)
        record_order_status(persisted)
        logger.info(
            "order_cancelled_by_customer",
            extra={"order_number": persisted.order_number, "old_status": order.status.value},
        )

        event = OrderCancelled(
            order_number=persisted.order_number,
            restaurant_id=persisted.restaurant_id,
            customer_id=persisted.customer_id,
            occurred_at=now,
        )
        message = serialize_cancelled_event(
            event=event,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        publish_event(self._publisher, ORDER_CANCELLED_TOPIC, str(persisted.order_number), message)
        return to_order_response(persisted)
