from __future__ import annotations

from fastapi import APIRouter, Query, Request, status

from mop.api.routes.dependencies import publisher, trace_context
from mop.application.dto.requests import CreateOrderRequest
from mop.application.dto.responses import OrderListResponse, OrderResponse
from mop.application.use_cases.cancel_order import CancelOrder
from mop.application.use_cases.create_order import CreateOrder
from mop.application.use_cases.get_order import GetCustomerOrder
from mop.application.use_cases.list_orders import ListCustomerOrders
from mop.domain.common.ids import CustomerId, OrderNumber, RestaurantId
from mop.infrastructure.db.repositories.catalog_repo import SqlAlchemyDishCatalog
from mop.infrastructure.db.repositories.directory_repo import (
    SqlAlchemyCustomerDirectory,
    SqlAlchemyRestaurantDirectory,
)
from mop.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository

router = APIRouter(prefix="/v1/customers/{customer_id}", tags=["customer-orders"])


@router.post(
    "/restaurants/{restaurant_id}/orders",
    response_model=OrderResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    customer_id: str,
    restaurant_id: str,
    request_dto: CreateOrderRequest,
    request: Request,
) -> OrderResponse:
    use_case = CreateOrder(
        dish_catalog=SqlAlchemyDishCatalog(),
        customer_directory=SqlAlchemyCustomerDirectory(),
        restaurant_directory=SqlAlchemyRestaurantDirectory(),
        order_repository=SqlAlchemyOrderRepository(),
        publisher=publisher(request),
    )
    return use_case.execute(
        customer_id=CustomerId(customer_id),
        restaurant_id=RestaurantId(restaurant_id),
        request_dto=request_dto,
        trace_ctx=trace_context(),
    )


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    customer_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = Query(default=None),
) -> OrderListResponse:
    return ListCustomerOrders(SqlAlchemyOrderRepository()).execute(
        customer_id=CustomerId(customer_id),
        limit=limit,
        cursor=cursor,
    )


@router.get(
    "/orders/{order_number}",
    response_model=OrderResponse,
    response_model_exclude_none=True,
)
def get_order(customer_id: str, order_number: str) -> OrderResponse:
    return GetCustomerOrder(SqlAlchemyOrderRepository()).execute(
        customer_id=CustomerId(customer_id),
        order_number=OrderNumber(order_number),
    )


@router.post(
    "/orders/{order_number}/cancel",
    response_model=OrderResponse,
    response_model_exclude_none=True,
)
def cancel_order(customer_id: str, order_number: str, request: Request) -> OrderResponse:
    use_case = CancelOrder(
        order_repository=SqlAlchemyOrderRepository(),
        publisher=publisher(request),
    )
    return use_case.execute(
        customer_id=CustomerId(customer_id),
        order_number=OrderNumber(order_number),
        trace_ctx=trace_context(),
    )
