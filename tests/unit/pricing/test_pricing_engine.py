from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from mop.domain.catalog.entities import Dish, DishSize
from mop.domain.common.ids import DishId, DishSizeId, RestaurantId
from mop.domain.common.money import Money
from mop.domain.pricing.engine import (
    FLAT_DELIVERY_FEE,
    CartLine,
    DishUnavailableError,
    EmptyCartError,
    InvalidCartError,
    InvalidDishSizeError,
    delivery_fee_for,
    normalize_cart,
    price_cart,
)
from mop.domain.pricing.tax_rates import DEFAULT_TAX_RATE, tax_rate_for_state

RESTAURANT = RestaurantId("rst_001")


def _dish(dish_id: str, sizes: list[tuple[str, str, int]], **kwargs) -> Dish:
    return Dish(
        dish_id=DishId(dish_id),
        restaurant_id=kwargs.pop("restaurant_id", RESTAURANT),
        name=kwargs.pop("name", dish_id),
        category="Mains",
        sizes=[DishSize(DishSizeId(sid), label, Money(cents)) for sid, label, cents in sizes],
        **kwargs,
    )


DISH_A = _dish("dsh_a", [("a_l", "Large", 1200), ("a_s", "Small", 800)], name="Pizza")
DISH_B = _dish("dsh_b", [("b_s", "Small", 500)], name="Salad")


def _line(dish_id: str, size_id: str | None, quantity) -> CartLine:
    return CartLine(
        dish_id=DishId(dish_id),
        size_id=DishSizeId(size_id) if size_id else None,
        quantity=quantity,
    )


def test_delivery_to_california_matches_reference_totals() -> None:
    priced = price_cart(
        lines=[_line("dsh_a", "a_l", 2), _line("dsh_b", "b_s", 1)],
        dishes=[DISH_A, DISH_B],
        restaurant_id=RESTAURANT,
        is_delivery=True,
        tax_state="CA",
    )

    assert priced.subtotal == Money(2900)
    assert priced.tax_rate == Decimal("7.25")
    assert priced.tax_amount == Money(210)
    assert priced.delivery_fee == Money(0)
    assert priced.total == Money(3110)
    assert [item.size for item in priced.items] == ["Large", "Small"]
    assert priced.items[0].total_price == Money(2400)


def test_pickup_in_unlisted_state_uses_default_rate_and_has_no_fee() -> None:
    priced = price_cart(
        lines=[_line("dsh_a", "a_l", 2), _line("dsh_b", "b_s", 1)],
        dishes=[DISH_A, DISH_B],
        restaurant_id=RESTAURANT,
        is_delivery=False,
        tax_state="PR",
    )

    assert priced.tax_rate == DEFAULT_TAX_RATE
    assert priced.tax_amount == Money(145)
    assert priced.delivery_fee is None
    assert priced.total == Money(3045)


@pytest.mark.parametrize(
    ("subtotal_cents", "expected_fee_cents"),
    [(1999, 449), (2000, 0), (2001, 0), (0, 449)],
)
def test_free_delivery_threshold_is_inclusive(subtotal_cents: int, expected_fee_cents: int) -> None:
    assert delivery_fee_for(Money(subtotal_cents)) == Money(expected_fee_cents)


def test_delivery_just_below_threshold_adds_flat_fee_to_total() -> None:
    dish = _dish("dsh_c", [("c_r", "Regular", 1999)])
    priced = price_cart(
        lines=[_line("dsh_c", "c_r", 1)],
        dishes=[dish],
        restaurant_id=RESTAURANT,
        is_delivery=True,
        tax_state="OR",
    )

    assert priced.tax_amount == Money(0)
    assert priced.delivery_fee == FLAT_DELIVERY_FEE
    assert priced.total == Money(1999 + 449)


@pytest.mark.parametrize(
    ("state", "expected"),
    [
        ("CA", Decimal("7.25")),
        ("ca", Decimal("7.25")),
        (" ny ", Decimal("4.0")),
        ("MN", Decimal("6.875")),
        ("DC", Decimal("6.0")),
        ("OR", Decimal("0.0")),
        ("ZZ", DEFAULT_TAX_RATE),
        ("", DEFAULT_TAX_RATE),
        (None, DEFAULT_TAX_RATE),
    ],
)
def test_tax_rate_lookup(state: str | None, expected: Decimal) -> None:
    assert tax_rate_for_state(state) == expected


def test_tax_rounds_half_up_to_the_cent() -> None:
    # 200 cents at 6.25% is 12.5 cents
    assert Money(200).percent(Decimal("6.25")) == Money(13)
    # 1000 cents at 4.225% is 42.25 cents
    assert Money(1000).percent(Decimal("4.225")) == Money(42)


def test_zero_quantity_lines_are_dropped() -> None:
    priced = price_cart(
        lines=[_line("dsh_a", "a_s", 1), _line("dsh_b", "b_s", 0)],
        dishes=[DISH_A, DISH_B],
        restaurant_id=RESTAURANT,
        is_delivery=False,
        tax_state="CA",
    )

    assert len(priced.items) == 1
    assert priced.subtotal == Money(800)


def test_cart_with_only_zero_quantities_is_empty() -> None:
    with pytest.raises(EmptyCartError):
        normalize_cart([_line("dsh_a", "a_s", 0)])


def test_empty_cart_is_rejected() -> None:
    with pytest.raises(EmptyCartError):
        normalize_cart([])


def test_negative_quantity_is_invalid() -> None:
    with pytest.raises(InvalidCartError) as exc_info:
        normalize_cart([_line("dsh_a", "a_s", -1), _line("dsh_b", "b_s", 1)])

    assert exc_info.value.details == {"invalidItems": [{"dishId": "dsh_a", "quantity": -1}]}


def test_unavailable_and_foreign_dishes_are_all_reported() -> None:
    sold_out = _dish("dsh_x", [("x_r", "Regular", 300)], is_available=False)
    foreign = _dish("dsh_y", [("y_r", "Regular", 300)], restaurant_id=RestaurantId("rst_999"))

    with pytest.raises(DishUnavailableError) as exc_info:
        price_cart(
            lines=[
                _line("dsh_a", "a_s", 1),
                _line("dsh_x", "x_r", 1),
                _line("dsh_y", "y_r", 1),
                _line("dsh_missing", "m_r", 1),
            ],
            dishes=[DISH_A, sold_out, foreign],
            restaurant_id=RESTAURANT,
            is_delivery=False,
            tax_state="CA",
        )

    assert exc_info.value.unavailable_dish_ids == ["dsh_x", "dsh_y", "dsh_missing"]


def test_unknown_size_fails_whole_order() -> None:
    with pytest.raises(InvalidDishSizeError) as exc_info:
        price_cart(
            lines=[_line("dsh_a", "a_s", 1), _line("dsh_b", "b_xl", 1)],
            dishes=[DISH_A, DISH_B],
            restaurant_id=RESTAURANT,
            is_delivery=False,
            tax_state="CA",
        )

    assert exc_info.value.details == {"dishId": "dsh_b", "sizeId": "b_xl"}


def test_missing_size_is_rejected() -> None:
    with pytest.raises(InvalidDishSizeError, match="Size ID is required"):
        price_cart(
            lines=[_line("dsh_a", None, 1)],
            dishes=[DISH_A],
            restaurant_id=RESTAURANT,
            is_delivery=False,
            tax_state="CA",
        )


def test_total_is_sum_of_rounded_components() -> None:
    dish = _dish("dsh_r", [("r_r", "Regular", 333)])
    priced = price_cart(
        lines=[_line("dsh_r", "r_r", 3)],
        dishes=[dish],
        restaurant_id=RESTAURANT,
        is_delivery=True,
        tax_state="MN",
    )

    # 999 cents at 6.875% is 68.68 cents
    assert priced.tax_amount == Money(69)
    assert priced.total.amount_cents == 999 + 69 + 449
