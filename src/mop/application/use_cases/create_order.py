from __future__ import annotations

import logging
from datetime import datetime, timezone

from mop.application.dto.requests import CreateOrderRequest
from mop.application.dto.responses import OrderResponse
from mop.application.mappers.event_envelope import serialize_order_created_event
from mop.application.mappers.order_mapper import to_order_response
from mop.application.metrics.order_lifecycle import (
    record_order_number_collision,
    record_order_status,
)
from mop.application.ports.publisher import ORDER_CREATED_TOPIC, EventPublisher
from mop.application.ports.repositories import (
    CustomerDirectory,
    DishCatalog,
    DuplicateOrderNumberError,
    OrderRepository,
    RestaurantDirectory,
)
from mop.application.use_cases.context import TraceContext
from mop.application.use_cases.errors import (
    CustomerNotFoundError,
    DeliveryAddressRequiredError,
    InvalidDeliveryAddressError,
    RestaurantAddressInvalidError,
    RestaurantNotFoundError,
)
from mop.application.use_cases.order_number import (
    OrderNumberAllocator,
    OrderNumberExhaustedError,
)
from mop.application.use_cases.publishing import publish_event
from mop.domain.common.address import Address
from mop.domain.common.ids import AddressId, CustomerId, DishId, DishSizeId, RestaurantId
from mop.domain.directory.entities import CustomerProfile, RestaurantProfile
from mop.domain.order.entities import CustomerDetails, Order, OrderStatus, RestaurantDetails
from mop.domain.pricing.engine import CartLine, PricedCart, price_cart

logger = logging.getLogger(__name__)


class CreateOrder:
    """Customer checkout: validate, price, number, persist, then announce the order."""

    def __init__(
        self,
        dish_catalog: DishCatalog,
        customer_directory: CustomerDirectory,
        restaurant_directory: RestaurantDirectory,
        order_repository: OrderRepository,
        publisher: EventPublisher,
        allocator: OrderNumberAllocator | None = None,
    ) -> None:
        self._dish_catalog = dish_catalog
        self._customer_directory = customer_directory
        self._restaurant_directory = restaurant_directory
        self._order_repository = order_repository
        self._publisher = publisher
        self._allocator = allocator or OrderNumberAllocator(order_repository)

    def execute(
        self,
        customer_id: CustomerId,
        restaurant_id: RestaurantId,
        request_dto: CreateOrderRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        customer = self._customer_directory.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer not found: {customer_id}")
        restaurant = self._restaurant_directory.get(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(f"Restaurant not found: {restaurant_id}")
        if restaurant.address is None:
            raise RestaurantAddressInvalidError(
                "Restaurant address is missing; orders cannot be placed"
            )

        delivery_address = self._resolve_delivery_address(customer, request_dto)
        tax_state = (
            delivery_address.state if delivery_address is not None else restaurant.address.state
        )

        lines = [
            CartLine(
                dish_id=DishId(item.dish_id),
                size_id=DishSizeId(item.size_id) if item.size_id else None,
                quantity=item.quantity,
            )
            for item in request_dto.items
        ]
        dish_ids = list(dict.fromkeys(line.dish_id for line in lines))
        dishes = self._dish_catalog.find_dishes(restaurant_id, dish_ids)
        priced = price_cart(
            lines=lines,
            dishes=dishes,
            restaurant_id=restaurant_id,
            is_delivery=request_dto.is_delivery,
            tax_state=tax_state,
        )

        order = self._persist(
            customer=customer,
            restaurant=restaurant,
            priced=priced,
            delivery_address=delivery_address,
            request_dto=request_dto,
        )
        record_order_status(order)
        logger.info(
            "order_created",
            extra={
                "order_number": order.order_number,
                "restaurant_id": order.restaurant_id,
                "customer_id": order.customer_id,
            },
        )

        message = serialize_order_created_event(
            order=order,
            occurred_at=order.created_at,
            trace_id=trace_ctx.trace_id,
            request_id=trace_ctx.request_id,
        )
        publish_event(self._publisher, ORDER_CREATED_TOPIC, str(order.order_number), message)
        return to_order_response(order)

    def _resolve_delivery_address(
        self,
        customer: CustomerProfile,
        request_dto: CreateOrderRequest,
    ) -> Address | None:
        if not request_dto.is_delivery:
            return None
        if not request_dto.address_id:
            raise DeliveryAddressRequiredError("Delivery address is required for delivery orders")
        address = customer.find_address(AddressId(request_dto.address_id))
        if address is None:
            raise InvalidDeliveryAddressError(
                f"Invalid delivery address selected: {request_dto.address_id}"
            )
        if not address.is_complete:
            raise InvalidDeliveryAddressError(
                f"Delivery address {request_dto.address_id} is incomplete: "
                f"missing {', '.join(address.missing_fields)}"
            )
        return address

    def _persist(
        self,
        *,
        customer: CustomerProfile,
        restaurant: RestaurantProfile,
        priced: PricedCart,
        delivery_address: Address | None,
        request_dto: CreateOrderRequest,
    ) -> Order:
        # A concurrent writer can claim a number between the existence check and the insert.
        for order_number in self._allocator.candidates():
            now = datetime.now(timezone.utc)
            order = Order(
                order_number=order_number,
                customer_id=customer.customer_id,
                restaurant_id=restaurant.restaurant_id,
                customer_details=CustomerDetails(
                    first_name=customer.first_name,
                    last_name=customer.last_name,
                    email=customer.email,
                    phone=customer.phone,
                ),
                restaurant_details=RestaurantDetails(
                    name=restaurant.name,
                    phone=restaurant.phone,
                    email=restaurant.email,
                    image_url=restaurant.image_url,
                    address=restaurant.address,
                ),
                items=priced.items,
                subtotal=priced.subtotal,
                tax_rate=priced.tax_rate,
                tax_amount=priced.tax_amount,
                delivery_fee=priced.delivery_fee,
                total=priced.total,
                is_delivery=request_dto.is_delivery,
                delivery_address=delivery_address,
                status=OrderStatus.NEW,
                customer_note=request_dto.customer_note,
                created_at=now,
                updated_at=now,
            )
            try:
                self._order_repository.add(order)
            except DuplicateOrderNumberError:
                record_order_number_collision()
                logger.warning(
                    "order_number_insert_conflict",
                    extra={"order_number": order.order_number},
                )
                continue
            return order
        raise OrderNumberExhaustedError(
            "Could not allocate an order number, please try again shortly."
        )
