from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mop.domain.order.entities import NOTE_MAX_LENGTH


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class CartItemRequest(CamelBaseModel):
    dish_id: str
    size_id: str | None = None
    quantity: int


class CreateOrderRequest(CamelBaseModel):
    items: list[CartItemRequest] = Field(default_factory=list)
    is_delivery: bool
    address_id: str | None = None
    customer_note: str | None = Field(default=None, max_length=NOTE_MAX_LENGTH)


class UpdateOrderStatusRequest(CamelBaseModel):
    status: str
    restaurant_note: str | None = Field(default=None, max_length=NOTE_MAX_LENGTH)
