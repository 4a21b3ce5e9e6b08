from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from mop.domain.common.address import Address
from mop.domain.common.ids import CustomerId, DishId, OrderNumber, RestaurantId
from mop.domain.common.money import Money, sum_money

NOTE_MAX_LENGTH = 350


class OrderStatus(str, Enum):
    NEW = "new"
    RECEIVED = "received"
    PREPARING = "preparing"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    PICKUP_READY = "pickup_ready"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"


DELIVERY_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.NEW,
    OrderStatus.RECEIVED,
    OrderStatus.PREPARING,
    OrderStatus.ON_THE_WAY,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
)

PICKUP_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.NEW,
    OrderStatus.RECEIVED,
    OrderStatus.PREPARING,
    OrderStatus.PICKUP_READY,
    OrderStatus.PICKED_UP,
    OrderStatus.CANCELLED,
)

CUSTOMER_CANCELLABLE_STATUSES = frozenset({OrderStatus.NEW, OrderStatus.RECEIVED})


def statuses_for(is_delivery: bool) -> tuple[OrderStatus, ...]:
    return DELIVERY_STATUSES if is_delivery else PICKUP_STATUSES


@dataclass(frozen=True)
class CustomerDetails:
    first_name: str
    last_name: str
    email: str
    phone: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class RestaurantDetails:
    name: str
    phone: str
    email: str
    address: Address
    image_url: str | None = None


@dataclass(frozen=True)
class OrderItem:
    dish_id: DishId
    name: str
    size: str
    unit_price: Money
    quantity: int
    total_price: Money
    category: str
    ingredients: list[str] = field(default_factory=list)
    image_url: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.total_price.currency:
            raise ValueError("total_price currency must match unit_price currency")
        if self.total_price.amount_cents != self.unit_price.amount_cents * self.quantity:
            raise ValueError("total_price must equal unit_price * quantity")


@dataclass(frozen=True)
class Order:
    order_number: OrderNumber
    customer_id: CustomerId
    restaurant_id: RestaurantId
    customer_details: CustomerDetails
    restaurant_details: RestaurantDetails
    items: list[OrderItem]
    subtotal: Money
    tax_rate: Decimal
    tax_amount: Money
    delivery_fee: Money | None
    total: Money
    is_delivery: bool
    delivery_address: Address | None
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    customer_note: str | None = None
    restaurant_note: str | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("order must contain at least one item")
        currency = self.subtotal.currency
        if sum_money([item.total_price for item in self.items], currency) != self.subtotal:
            raise ValueError("subtotal must equal sum of item totals")

        expected_total = self.subtotal + self.tax_amount
        if self.delivery_fee is not None:
            expected_total = expected_total + self.delivery_fee
        if self.total != expected_total:
            raise ValueError("total must equal subtotal + tax_amount + delivery_fee")

        if self.is_delivery and self.delivery_address is None:
            raise ValueError("delivery orders require a delivery address")
        if not self.is_delivery and self.delivery_address is not None:
            raise ValueError("pickup orders must not carry a delivery address")
        if not self.is_delivery and self.delivery_fee is not None:
            raise ValueError("pickup orders must not carry a delivery fee")

        if self.status not in statuses_for(self.is_delivery):
            raise ValueError(f"status {self.status.value} is not valid for this order type")
        if self.version < 1:
            raise ValueError("version must be >= 1")
        for note in (self.customer_note, self.restaurant_note):
            if note is not None and len(note) > NOTE_MAX_LENGTH:
                raise ValueError(f"notes must be at most {NOTE_MAX_LENGTH} characters")

    @property
    def valid_statuses(self) -> tuple[OrderStatus, ...]:
        return statuses_for(self.is_delivery)

    def change_status(
        self,
        target: OrderStatus,
        note: str | None,
        now: datetime,
    ) -> Order:
        """Apply a restaurant-initiated status change.

        Only membership in the order's vocabulary is checked; the machine
        allows any jump between statuses of that vocabulary.
        """
        if target == self.status:
            raise SameStatusError(
                f"Order status is already '{target.value}'. Choose another status for update."
            )
        if self.status == OrderStatus.CANCELLED:
            raise OrderAlreadyCancelledError("Cannot update a cancelled order.")
        if target not in self.valid_statuses:
            kind = "delivery" if self.is_delivery else "pickup"
            raise StatusNotAllowedError(
                f"Invalid status for '{kind}' order",
                valid_statuses=[status.value for status in self.valid_statuses],
            )

        restaurant_note = self.restaurant_note
        if target == OrderStatus.CANCELLED:
            if note is None or not note.strip():
                raise CancellationNoteRequiredError(
                    "A note is required when cancelling an order. "
                    "Please explain the reason for cancellation to notify the customer."
                )
            restaurant_note = note
        return replace(self, status=target, restaurant_note=restaurant_note, updated_at=now)

    def cancel_by_customer(self, now: datetime) -> Order:
        if self.status not in CUSTOMER_CANCELLABLE_STATUSES:
            raise OrderNotCancellableError(
                "Order has been processed already and cannot be cancelled. "
                "Please contact the restaurant for support."
            )
        return replace(self, status=OrderStatus.CANCELLED, updated_at=now)

    def mark_received(self, now: datetime) -> Order:
        if self.status != OrderStatus.NEW:
            raise OrderTransitionError(f"cannot receive order from status={self.status.value}")
        return replace(self, status=OrderStatus.RECEIVED, updated_at=now)


class OrderTransitionError(Exception):
    pass


class SameStatusError(OrderTransitionError):
    pass


class OrderAlreadyCancelledError(OrderTransitionError):
    pass


class StatusNotAllowedError(OrderTransitionError):
    def __init__(self, message: str, valid_statuses: list[str]) -> None:
        super().__init__(message)
        self.details = {"validStatuses": valid_statuses}


class CancellationNoteRequiredError(OrderTransitionError):
    pass


class OrderNotCancellableError(OrderTransitionError):
    pass
