from __future__ import annotations

from typing import Protocol, Sequence

from mop.domain.catalog.entities import Dish
from mop.domain.common.ids import CustomerId, DishId, OrderNumber, RestaurantId
from mop.domain.directory.entities import CustomerProfile, RestaurantProfile
from mop.domain.order.entities import Order, OrderStatus


class DishCatalog(Protocol):
    def find_dishes(self, restaurant_id: RestaurantId, dish_ids: Sequence[DishId]) -> list[Dish]: ...


class CustomerDirectory(Protocol):
    def get(self, customer_id: CustomerId) -> CustomerProfile | None: ...


class RestaurantDirectory(Protocol):
    def get(self, restaurant_id: RestaurantId) -> RestaurantProfile | None: ...


class OrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def insert_if_absent(self, order: Order) -> bool: ...

    def order_number_exists(self, order_number: OrderNumber) -> bool: ...

    def get(self, order_number: OrderNumber) -> Order | None: ...

    def get_for_customer(
        self,
        order_number: OrderNumber,
        customer_id: CustomerId,
    ) -> Order | None: ...

    def get_for_restaurant(
        self,
        order_number: OrderNumber,
        restaurant_id: RestaurantId,
    ) -> Order | None: ...

    def update_status_with_version(
        self,
        order: Order,
        expected_version: int,
    ) -> Order: ...

    def list_for_customer(
        self,
        customer_id: CustomerId,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]: ...

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: OrderStatus | None,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]: ...


class DuplicateOrderNumberError(Exception):
    pass


class OptimisticConcurrencyError(Exception):
    pass


class InvalidCursorError(Exception):
    pass
