from __future__ import annotations

from mop.application.dto.responses import OrderResponse
from mop.application.mappers.order_mapper import to_order_response
from mop.application.ports.repositories import OrderRepository
from mop.application.use_cases.errors import OrderNotFoundError
from mop.domain.common.ids import CustomerId, OrderNumber, RestaurantId


class GetCustomerOrder:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, customer_id: CustomerId, order_number: OrderNumber) -> OrderResponse:
        order = self._order_repository.get_for_customer(order_number, customer_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_number}")
        return to_order_response(order)


class GetRestaurantOrder:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, restaurant_id: RestaurantId, order_number: OrderNumber) -> OrderResponse:
        order = self._order_repository.get_for_restaurant(order_number, restaurant_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_number}")
        return to_order_response(order)
