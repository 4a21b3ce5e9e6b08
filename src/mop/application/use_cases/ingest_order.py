from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from mop.application.metrics.order_lifecycle import (
    record_order_status,
    record_time_to_receive,
    record_transition,
)
from mop.application.ports.repositories import OptimisticConcurrencyError, OrderRepository
from mop.domain.order.entities import Order, OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    order: Order
    ingested: bool


class IngestOrder:
    """Activate a newly created order on the restaurant side.

    The order number is the dedup key: an order already past ``new`` is a
    redelivery and is left untouched.
    """

    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, incoming: Order) -> IngestResult:
        now = datetime.now(timezone.utc)
        existing = self._order_repository.get(incoming.order_number)

        if existing is None:
            received = replace(
                incoming,
                status=OrderStatus.RECEIVED,
                updated_at=now,
                version=1,
            )
            if self._order_repository.insert_if_absent(received):
                return self._ingested(received, from_status=incoming.status, now=now)
            existing = self._order_repository.get(incoming.order_number)
            if existing is None:
                raise RuntimeError(f"order {incoming.order_number} vanished during ingestion")

        if existing.status != OrderStatus.NEW:
            logger.info(
                "order_ingest_duplicate",
                extra={"order_number": existing.order_number, "status": existing.status.value},
            )
            return IngestResult(order=existing, ingested=False)

        try:
            promoted = self._order_repository.update_status_with_version(
                order=existing.mark_received(now),
                expected_version=existing.version,
            )
        except OptimisticConcurrencyError:
            current = self._order_repository.get(existing.order_number) or existing
            logger.info(
                "order_ingest_duplicate",
                extra={"order_number": current.order_number, "status": current.status.value},
            )
            return IngestResult(order=current, ingested=False)
        return self._ingested(promoted, from_status=existing.status, now=now)

    def _ingested(self, order: Order, from_status: OrderStatus, now: datetime) -> IngestResult:
        record_transition(from_status=from_status, to_status=order.status)
        record_order_status(order)
        record_time_to_receive(order, now=now)
        logger.info(
            "order_ingested",
            extra={"order_number": order.order_number, "restaurant_id": order.restaurant_id},
        )
        return IngestResult(order=order, ingested=True)
