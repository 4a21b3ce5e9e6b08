from __future__ import annotations

from mop.application.dto.responses import OrderListResponse
from mop.application.mappers.order_mapper import to_order_summary
from mop.application.ports.repositories import OrderRepository
from mop.application.use_cases.errors import InvalidStatusFilterError
from mop.domain.common.ids import CustomerId, RestaurantId
from mop.domain.order.entities import OrderStatus

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _clamp(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_PAGE_SIZE
    return max(1, min(limit, MAX_PAGE_SIZE))


class ListCustomerOrders:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(
        self,
        customer_id: CustomerId,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> OrderListResponse:
        orders, next_cursor = self._order_repository.list_for_customer(
            customer_id=customer_id,
            limit=_clamp(limit),
            cursor=cursor,
        )
        return OrderListResponse(
            orders=[to_order_summary(order) for order in orders],
            nextCursor=next_cursor,
        )


class ListRestaurantOrders:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(
        self,
        restaurant_id: RestaurantId,
        status: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> OrderListResponse:
        status_filter: OrderStatus | None = None
        if status:
            try:
                status_filter = OrderStatus(status.strip().lower())
            except ValueError:
                raise InvalidStatusFilterError(
                    f"Unknown order status filter: {status}",
                    valid_statuses=[item.value for item in OrderStatus],
                ) from None

        orders, next_cursor = self._order_repository.list_for_restaurant(
            restaurant_id=restaurant_id,
            status=status_filter,
            limit=_clamp(limit),
            cursor=cursor,
        )
        return OrderListResponse(
            orders=[to_order_summary(order) for order in orders],
            nextCursor=next_cursor,
        )
