"""Cart pricing: line validation, subtotal, tax and delivery fee.

Every component is rounded to the cent on its own before it is added to the
total, so ``total == subtotal + tax_amount + delivery_fee`` holds exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from mop.domain.catalog.entities import Dish
from mop.domain.common.ids import DishId, DishSizeId, RestaurantId
from mop.domain.common.money import DEFAULT_CURRENCY, Money, sum_money
from mop.domain.order.entities import OrderItem
from mop.domain.pricing.tax_rates import tax_rate_for_state

FLAT_DELIVERY_FEE = Money(amount_cents=449, currency=DEFAULT_CURRENCY)
FREE_DELIVERY_THRESHOLD = Money(amount_cents=2000, currency=DEFAULT_CURRENCY)


@dataclass(frozen=True)
class CartLine:
    dish_id: DishId
    size_id: DishSizeId | None
    quantity: int


@dataclass(frozen=True)
class PricedCart:
    items: list[OrderItem]
    subtotal: Money
    tax_rate: Decimal
    tax_amount: Money
    delivery_fee: Money | None
    total: Money


class EmptyCartError(Exception):
    pass


class InvalidCartError(Exception):
    def __init__(self, message: str, invalid_lines: list[dict[str, object]]) -> None:
        super().__init__(message)
        self.details = {"invalidItems": invalid_lines}


class DishUnavailableError(Exception):
    def __init__(self, message: str, unavailable_dish_ids: list[str]) -> None:
        super().__init__(message)
        self.unavailable_dish_ids = unavailable_dish_ids
        self.details = {"unavailableDishIds": unavailable_dish_ids}


class InvalidDishSizeError(Exception):
    def __init__(self, message: str, dish_id: str, size_id: str | None) -> None:
        super().__init__(message)
        self.details = {"dishId": dish_id, "sizeId": size_id}


def normalize_cart(lines: Sequence[CartLine]) -> list[CartLine]:
    """Validate quantities and drop zero-quantity lines."""
    if not lines:
        raise EmptyCartError("Order must contain at least one item")

    invalid = [
        {"dishId": str(line.dish_id), "quantity": line.quantity}
        for line in lines
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 0
    ]
    if invalid:
        raise InvalidCartError(
            "All item quantities must be whole numbers greater than or equal to 0",
            invalid_lines=invalid,
        )

    kept = [line for line in lines if line.quantity > 0]
    if not kept:
        raise EmptyCartError("Order must contain at least one item with quantity greater than 0")
    return kept


def delivery_fee_for(subtotal: Money) -> Money:
    if subtotal.amount_cents >= FREE_DELIVERY_THRESHOLD.amount_cents:
        return Money.zero(subtotal.currency)
    return FLAT_DELIVERY_FEE


def price_cart(
    *,
    lines: Sequence[CartLine],
    dishes: Sequence[Dish],
    restaurant_id: RestaurantId,
    is_delivery: bool,
    tax_state: str | None,
) -> PricedCart:
    cart = normalize_cart(lines)

    by_id = {str(dish.dish_id): dish for dish in dishes}
    unavailable: list[str] = []
    for line in cart:
        dish = by_id.get(str(line.dish_id))
        usable = (
            dish is not None
            and str(dish.restaurant_id) == str(restaurant_id)
            and dish.is_available
        )
        if not usable and str(line.dish_id) not in unavailable:
            unavailable.append(str(line.dish_id))
    if unavailable:
        raise DishUnavailableError(
            "One or more dishes are unavailable",
            unavailable_dish_ids=unavailable,
        )

    items: list[OrderItem] = []
    for line in cart:
        dish = by_id[str(line.dish_id)]
        if not line.size_id:
            raise InvalidDishSizeError(
                f"Size ID is required for dish: {dish.name}",
                dish_id=str(dish.dish_id),
                size_id=None,
            )
        size = dish.size(str(line.size_id))
        if size is None:
            raise InvalidDishSizeError(
                f"Invalid size selected for dish: {dish.name}",
                dish_id=str(dish.dish_id),
                size_id=str(line.size_id),
            )
        items.append(
            OrderItem(
                dish_id=dish.dish_id,
                name=dish.name,
                size=size.label,
                unit_price=size.price,
                quantity=line.quantity,
                total_price=size.price.times(line.quantity),
                category=dish.category,
                ingredients=list(dish.ingredients),
                image_url=dish.image_url,
            )
        )

    currency = items[0].unit_price.currency
    subtotal = sum_money([item.total_price for item in items], currency)
    tax_rate = tax_rate_for_state(tax_state)
    tax_amount = subtotal.percent(tax_rate)
    delivery_fee = delivery_fee_for(subtotal) if is_delivery else None

    total = subtotal + tax_amount
    if delivery_fee is not None:
        total = total + delivery_fee

    return PricedCart(
        items=items,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        delivery_fee=delivery_fee,
        total=total,
    )
