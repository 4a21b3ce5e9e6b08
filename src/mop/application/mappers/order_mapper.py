from __future__ import annotations

from datetime import timezone
from decimal import Decimal

from mop.application.dto.responses import (
    AddressResponse,
    CustomerDetailsResponse,
    MoneyResponse,
    OrderItemResponse,
    OrderResponse,
    OrderSummaryResponse,
    RestaurantDetailsResponse,
)
from mop.domain.common.address import Address
from mop.domain.common.ids import CustomerId, DishId, OrderNumber, RestaurantId
from mop.domain.common.money import Money
from mop.domain.order.entities import (
    CustomerDetails,
    Order,
    OrderItem,
    OrderStatus,
    RestaurantDetails,
)


def _money(value: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=value.amount_cents, currency=value.currency)


def _address(value: Address) -> AddressResponse:
    return AddressResponse(
        label=value.label,
        street=value.street,
        city=value.city,
        state=value.state,
        country=value.country,
        zipCode=value.zip_code,
    )


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderNumber=str(order.order_number),
        customerId=str(order.customer_id),
        restaurantId=str(order.restaurant_id),
        customerDetails=CustomerDetailsResponse(
            firstName=order.customer_details.first_name,
            lastName=order.customer_details.last_name,
            email=order.customer_details.email,
            phone=order.customer_details.phone,
        ),
        restaurantDetails=RestaurantDetailsResponse(
            name=order.restaurant_details.name,
            phone=order.restaurant_details.phone,
            email=order.restaurant_details.email,
            imageUrl=order.restaurant_details.image_url,
            address=_address(order.restaurant_details.address),
        ),
        items=[
            OrderItemResponse(
                dishId=str(item.dish_id),
                name=item.name,
                size=item.size,
                unitPrice=_money(item.unit_price),
                quantity=item.quantity,
                totalPrice=_money(item.total_price),
                category=item.category,
                ingredients=list(item.ingredients),
                imageUrl=item.image_url,
            )
            for item in order.items
        ],
        subtotal=_money(order.subtotal),
        taxRate=float(order.tax_rate),
        taxAmount=_money(order.tax_amount),
        deliveryFee=_money(order.delivery_fee) if order.delivery_fee is not None else None,
        total=_money(order.total),
        isDelivery=order.is_delivery,
        deliveryAddress=(
            _address(order.delivery_address) if order.delivery_address is not None else None
        ),
        status=order.status.value,
        customerNote=order.customer_note,
        restaurantNote=order.restaurant_note,
        version=order.version,
        createdAt=order.created_at,
        updatedAt=order.updated_at,
    )


def to_order_summary(order: Order) -> OrderSummaryResponse:
    return OrderSummaryResponse(
        orderNumber=str(order.order_number),
        restaurantName=order.restaurant_details.name,
        customerName=order.customer_details.full_name,
        items=[f"{item.quantity} x {item.name} ({item.size})" for item in order.items],
        totalItems=len(order.items),
        status=order.status.value,
        deliveryType="Delivery" if order.is_delivery else "Pickup",
        total=_money(order.total),
        createdAt=order.created_at,
        updatedAt=order.updated_at,
    )


def _from_money(value: MoneyResponse) -> Money:
    return Money(amount_cents=value.amountCents, currency=value.currency)


def _from_address(value: AddressResponse) -> Address:
    return Address(
        label=value.label,
        street=value.street,
        city=value.city,
        state=value.state,
        country=value.country,
        zip_code=value.zipCode,
    )


def from_order_response(payload: OrderResponse) -> Order:
    """Rebuild the aggregate from its wire form; entity invariants re-run on the way in."""
    created_at = payload.createdAt
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    updated_at = payload.updatedAt
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)

    return Order(
        order_number=OrderNumber(payload.orderNumber),
        customer_id=CustomerId(payload.customerId),
        restaurant_id=RestaurantId(payload.restaurantId),
        customer_details=CustomerDetails(
            first_name=payload.customerDetails.firstName,
            last_name=payload.customerDetails.lastName,
            email=payload.customerDetails.email,
            phone=payload.customerDetails.phone,
        ),
        restaurant_details=RestaurantDetails(
            name=payload.restaurantDetails.name,
            phone=payload.restaurantDetails.phone,
            email=payload.restaurantDetails.email,
            image_url=payload.restaurantDetails.imageUrl,
            address=_from_address(payload.restaurantDetails.address),
        ),
        items=[
            OrderItem(
                dish_id=DishId(item.dishId),
                name=item.name,
                size=item.size,
                unit_price=_from_money(item.unitPrice),
                quantity=item.quantity,
                total_price=_from_money(item.totalPrice),
                category=item.category,
                ingredients=list(item.ingredients),
                image_url=item.imageUrl,
            )
            for item in payload.items
        ],
        subtotal=_from_money(payload.subtotal),
        tax_rate=Decimal(str(payload.taxRate)),
        tax_amount=_from_money(payload.taxAmount),
        delivery_fee=_from_money(payload.deliveryFee) if payload.deliveryFee else None,
        total=_from_money(payload.total),
        is_delivery=payload.isDelivery,
        delivery_address=(
            _from_address(payload.deliveryAddress) if payload.deliveryAddress else None
        ),
        status=OrderStatus(payload.status),
        customer_note=payload.customerNote,
        restaurant_note=payload.restaurantNote,
        version=payload.version,
        created_at=created_at,
        updated_at=updated_at,
    )
