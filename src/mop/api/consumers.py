from __future__ import annotations

import os
import socket

from mop.application.handlers.order_events import (
    OrderCancelledHandler,
    OrderCreatedHandler,
    OrderStatusChangedHandler,
)
from mop.application.ports.notifier import LiveNotifier
from mop.application.ports.publisher import (
    ORDER_CANCELLED_TOPIC,
    ORDER_CREATED_TOPIC,
    ORDER_STATUS_CHANGED_TOPIC,
)
from mop.application.use_cases.ingest_order import IngestOrder
from mop.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from mop.infrastructure.messaging.broker import BrokerClient
from mop.infrastructure.messaging.redis_stream_consumer import StreamConsumer

RESTAURANT_ORDERS_GROUP = "restaurant-orders"
CUSTOMER_STATUS_GROUP = "customer-status"
RESTAURANT_CANCELS_GROUP = "restaurant-cancels"


def consumer_name_from_env() -> str:
    return os.getenv("CONSUMER_NAME") or f"{socket.gethostname()}-{os.getpid()}"


def build_consumers(
    *,
    roles: set[str],
    broker: BrokerClient,
    notifier: LiveNotifier,
    consumer_name: str,
    block_ms: int | None = 5000,
    poll_interval: float = 0.1,
) -> list[StreamConsumer]:
    """Subscriptions owned by each process role.

    The restaurant side ingests new orders and hears about cancellations; the
    customer side hears about status changes.
    """
    client = broker.async_client
    options = {"block_ms": block_ms, "poll_interval": poll_interval}
    consumers: list[StreamConsumer] = []
    if "restaurant" in roles:
        consumers.append(
            StreamConsumer(
                client,
                ORDER_CREATED_TOPIC,
                RESTAURANT_ORDERS_GROUP,
                consumer_name,
                OrderCreatedHandler(IngestOrder(SqlAlchemyOrderRepository()), notifier).handle,
                **options,
            )
        )
        consumers.append(
            StreamConsumer(
                client,
                ORDER_CANCELLED_TOPIC,
                RESTAURANT_CANCELS_GROUP,
                consumer_name,
                OrderCancelledHandler(notifier).handle,
                **options,
            )
        )
    if "customer" in roles:
        consumers.append(
            StreamConsumer(
                client,
                ORDER_STATUS_CHANGED_TOPIC,
                CUSTOMER_STATUS_GROUP,
                consumer_name,
                OrderStatusChangedHandler(notifier).handle,
                **options,
            )
        )
    return consumers
