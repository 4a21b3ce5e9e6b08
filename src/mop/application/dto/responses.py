from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class AddressResponse(BaseModel):
    label: str | None = None
    street: str
    city: str
    state: str
    country: str
    zipCode: str


class CustomerDetailsResponse(BaseModel):
    firstName: str
    lastName: str
    email: str
    phone: str


class RestaurantDetailsResponse(BaseModel):
    name: str
    phone: str
    email: str
    imageUrl: str | None = None
    address: AddressResponse


class OrderItemResponse(BaseModel):
    dishId: str
    name: str
    size: str
    unitPrice: MoneyResponse
    quantity: int
    totalPrice: MoneyResponse
    category: str
    ingredients: list[str] = Field(default_factory=list)
    imageUrl: str | None = None


class OrderResponse(BaseModel):
    orderNumber: str
    customerId: str
    restaurantId: str
    customerDetails: CustomerDetailsResponse
    restaurantDetails: RestaurantDetailsResponse
    items: list[OrderItemResponse] = Field(min_length=1)
    subtotal: MoneyResponse
    taxRate: float
    taxAmount: MoneyResponse
    deliveryFee: MoneyResponse | None = None
    total: MoneyResponse
    isDelivery: bool
    deliveryAddress: AddressResponse | None = None
    status: str
    customerNote: str | None = None
    restaurantNote: str | None = None
    version: int
    createdAt: datetime
    updatedAt: datetime


class OrderSummaryResponse(BaseModel):
    orderNumber: str
    restaurantName: str
    customerName: str
    items: list[str] = Field(default_factory=list)
    totalItems: int
    status: str
    deliveryType: str
    total: MoneyResponse
    createdAt: datetime
    updatedAt: datetime


class OrderListResponse(BaseModel):
    orders: list[OrderSummaryResponse] = Field(default_factory=list)
    nextCursor: str | None = None
