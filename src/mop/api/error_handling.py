from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mop.api.middleware.request_id import get_request_id
from mop.application.ports.repositories import InvalidCursorError
from mop.application.use_cases.errors import (
    CustomerNotFoundError,
    DeliveryAddressRequiredError,
    InvalidDeliveryAddressError,
    InvalidStatusFilterError,
    OrderConflictError,
    OrderNotFoundError,
    RestaurantAddressInvalidError,
    RestaurantNotFoundError,
)
from mop.application.use_cases.order_number import OrderNumberExhaustedError
from mop.domain.order.entities import (
    CancellationNoteRequiredError,
    OrderAlreadyCancelledError,
    OrderNotCancellableError,
    SameStatusError,
    StatusNotAllowedError,
)
from mop.domain.pricing.engine import (
    DishUnavailableError,
    EmptyCartError,
    InvalidCartError,
    InvalidDishSizeError,
)


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": validation_exc.errors()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    mappings: list[tuple[type[Exception], int, str]] = [
        (EmptyCartError, 400, "EMPTY_CART"),
        (InvalidCartError, 400, "INVALID_CART"),
        (DishUnavailableError, 400, "DISH_UNAVAILABLE"),
        (InvalidDishSizeError, 400, "INVALID_DISH_SIZE"),
        (DeliveryAddressRequiredError, 400, "DELIVERY_ADDRESS_REQUIRED"),
        (InvalidDeliveryAddressError, 400, "INVALID_DELIVERY_ADDRESS"),
        (RestaurantAddressInvalidError, 400, "RESTAURANT_ADDRESS_INVALID"),
        (StatusNotAllowedError, 400, "INVALID_STATUS"),
        (InvalidStatusFilterError, 400, "INVALID_STATUS"),
        (InvalidCursorError, 400, "INVALID_CURSOR"),
        (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
        (CustomerNotFoundError, 404, "CUSTOMER_NOT_FOUND"),
        (RestaurantNotFoundError, 404, "RESTAURANT_NOT_FOUND"),
        (SameStatusError, 400, "SAME_STATUS"),
        (OrderAlreadyCancelledError, 400, "ORDER_ALREADY_CANCELLED"),
        (CancellationNoteRequiredError, 400, "CANCELLATION_NOTE_REQUIRED"),
        (OrderNotCancellableError, 400, "ORDER_NOT_CANCELLABLE"),
        (OrderConflictError, 409, "CONFLICT"),
        (OrderNumberExhaustedError, 503, "ORDER_NUMBER_UNAVAILABLE"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
