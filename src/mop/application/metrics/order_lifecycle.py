from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Histogram

from mop.domain.order.entities import Order, OrderStatus

ORDERS_TOTAL = Counter(
    "mop_orders_total",
    "Total number of orders observed by status.",
    ["restaurant_id", "status"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "mop_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["from", "to"],
)

ORDER_NUMBER_COLLISIONS_TOTAL = Counter(
    "mop_order_number_collisions_total",
    "Total number of order number candidates rejected because they were taken.",
)

ORDER_TIME_TO_RECEIVE_SECONDS = Histogram(
    "mop_order_time_to_receive_seconds",
    "Time between order creation and restaurant-side ingestion.",
)

EVENT_PUBLISH_FAILURES_TOTAL = Counter(
    "mop_event_publish_failures_total",
    "Total number of events that could not be handed to the broker.",
    ["topic"],
)

EVENTS_CONSUMED_TOTAL = Counter(
    "mop_events_consumed_total",
    "Total number of broker entries handled successfully.",
    ["topic"],
)

EVENT_CONSUME_FAILURES_TOTAL = Counter(
    "mop_event_consume_failures_total",
    "Total number of broker entries dropped after a handler failure.",
    ["topic"],
)


def record_order_status(order: Order) -> None:
    ORDERS_TOTAL.labels(
        restaurant_id=str(order.restaurant_id),
        status=order.status.value,
    ).inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_order_number_collision() -> None:
    ORDER_NUMBER_COLLISIONS_TOTAL.inc()


def record_time_to_receive(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_RECEIVE_SECONDS.observe(max((current - order.created_at).total_seconds(), 0.0))


def record_publish_failure(topic: str) -> None:
    EVENT_PUBLISH_FAILURES_TOTAL.labels(topic=topic).inc()


def record_event_consumed(topic: str) -> None:
    EVENTS_CONSUMED_TOTAL.labels(topic=topic).inc()


def record_consume_failure(topic: str) -> None:
    EVENT_CONSUME_FAILURES_TOTAL.labels(topic=topic).inc()
