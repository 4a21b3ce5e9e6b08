from __future__ import annotations

from fastapi import APIRouter, Query, Request

from mop.api.routes.dependencies import publisher, trace_context
from mop.application.dto.requests import UpdateOrderStatusRequest
from mop.application.dto.responses import OrderListResponse, OrderResponse
from mop.application.use_cases.get_order import GetRestaurantOrder
from mop.application.use_cases.list_orders import ListRestaurantOrders
from mop.application.use_cases.update_order_status import UpdateOrderStatus
from mop.domain.common.ids import OrderNumber, RestaurantId
from mop.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository

router = APIRouter(prefix="/v1/restaurants/{restaurant_id}", tags=["restaurant-orders"])


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    restaurant_id: str,
    status: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = Query(default=None),
) -> OrderListResponse:
    return ListRestaurantOrders(SqlAlchemyOrderRepository()).execute(
        restaurant_id=RestaurantId(restaurant_id),
        status=status,
        limit=limit,
        cursor=cursor,
    )


@router.get(
    "/orders/{order_number}",
    response_model=OrderResponse,
    response_model_exclude_none=True,
)
def get_order(restaurant_id: str, order_number: str) -> OrderResponse:
    return GetRestaurantOrder(SqlAlchemyOrderRepository()).execute(
        restaurant_id=RestaurantId(restaurant_id),
        order_number=OrderNumber(order_number),
    )


@router.put(
    "/orders/{order_number}/status",
    response_model=OrderResponse,
    response_model_exclude_none=True,
)
def update_order_status(
    restaurant_id: str,
    order_number: str,
    request_dto: UpdateOrderStatusRequest,
    request: Request,
) -> OrderResponse:
    use_case = UpdateOrderStatus(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=publisher(request),
    )
    return use_case.execute(
        restaurant_id=RestaurantId(restaurant_id),
        order_number=OrderNumber(order_number),
        request_dto=request_dto,
        trace_ctx=trace_context(),
    )
