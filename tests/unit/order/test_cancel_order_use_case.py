from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from order_builders import InMemoryOrderRepository, RecordingPublisher, make_order

from mop.application.ports.publisher import ORDER_CANCELLED_TOPIC
from mop.application.use_cases.cancel_order import CancelOrder
from mop.application.use_cases.context import TraceContext
from mop.application.use_cases.errors import OrderConflictError, OrderNotFoundError
from mop.domain.common.ids import CustomerId, OrderNumber
from mop.domain.order.entities import OrderNotCancellableError, OrderStatus

TRACE = TraceContext(trace_id=None, request_id="req-2")
ORDER = OrderNumber("O1234567")


def _cancel(repository, publisher, customer_id: str = "cus_001"):
    return CancelOrder(order_repository=repository, publisher=publisher).execute(
        customer_id=CustomerId(customer_id),
        order_number=ORDER,
        trace_ctx=TRACE,
    )


@pytest.mark.parametrize("status", [OrderStatus.NEW, OrderStatus.RECEIVED])
def test_customer_cancel_publishes_cancelled_event(status: OrderStatus) -> None:
    repository = InMemoryOrderRepository([make_order(status=status)])
    publisher = RecordingPublisher()

    response = _cancel(repository, publisher)

    assert response.status == "cancelled"
    assert "restaurantNote" not in response.model_dump(exclude_none=True)
    assert repository.get(ORDER).status == OrderStatus.CANCELLED

    topic, key, message = publisher.published[0]
    assert (topic, key) == (ORDER_CANCELLED_TOPIC, "O1234567")
    envelope = json.loads(message)
    assert envelope["event_type"] == "order.cancelled"
    assert envelope["payload"]["event"] == "Order: O1234567 has been cancelled"


def test_cancel_after_preparation_is_refused() -> None:
    repository = InMemoryOrderRepository([make_order(status=OrderStatus.PREPARING)])
    publisher = RecordingPublisher()

    with pytest.raises(OrderNotCancellableError):
        _cancel(repository, publisher)

    assert publisher.published == []


def test_other_customers_order_is_not_found() -> None:
    repository = InMemoryOrderRepository([make_order()])

    with pytest.raises(OrderNotFoundError):
        _cancel(repository, RecordingPublisher(), customer_id="cus_002")


def test_cancel_racing_a_restaurant_update_conflicts() -> None:
    repository = InMemoryOrderRepository([make_order()])
    repository.fail_next_cas = True

    with pytest.raises(OrderConflictError):
        _cancel(repository, RecordingPublisher())

    assert repository.get(ORDER).status == OrderStatus.NEW
