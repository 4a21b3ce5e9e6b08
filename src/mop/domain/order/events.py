from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from mop.domain.common.ids import CustomerId, OrderNumber, RestaurantId
from mop.domain.order.entities import OrderStatus


@dataclass(frozen=True)
class OrderCreated:
    order_number: OrderNumber
    restaurant_id: RestaurantId
    customer_id: CustomerId
    occurred_at: datetime


@dataclass(frozen=True)
class OrderStatusChanged:
    order_number: OrderNumber
    restaurant_id: RestaurantId
    customer_id: CustomerId
    old_status: OrderStatus
    new_status: OrderStatus
    restaurant_note: str | None
    occurred_at: datetime

    @property
    def description(self) -> str:
        return (
            f'Order: {self.order_number} status changed from "{self.old_status.value}" '
            f'to "{self.new_status.value}"'
        )


@dataclass(frozen=True)
class OrderCancelled:
    order_number: OrderNumber
    restaurant_id: RestaurantId
    customer_id: CustomerId
    occurred_at: datetime

    @property
    def description(self) -> str:
        return f"Order: {self.order_number} has been cancelled"
