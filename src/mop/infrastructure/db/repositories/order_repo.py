from __future__ import annotations

import base64
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import Engine, and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import Select

from mop.application.ports.repositories import (
    DuplicateOrderNumberError,
    InvalidCursorError,
    OptimisticConcurrencyError,
    OrderRepository,
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
from mop.infrastructure.db.models.order import OrderItemModel, OrderModel
from mop.infrastructure.db.session import get_engine


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, order: Order) -> None:
        with Session(self._engine) as session:
            session.add(self._to_model(order))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateOrderNumberError(
                    f"order number {order.order_number} already exists"
                ) from exc

    def insert_if_absent(self, order: Order) -> bool:
        try:
            self.add(order)
        except DuplicateOrderNumberError:
            return False
        return True

    def order_number_exists(self, order_number: OrderNumber) -> bool:
        statement = (
            select(OrderModel.order_number)
            .where(OrderModel.order_number == str(order_number))
            .limit(1)
        )
        with Session(self._engine) as session:
            return session.execute(statement).scalar_one_or_none() is not None

    def get(self, order_number: OrderNumber) -> Order | None:
        return self._first(
            self._base_query().where(OrderModel.order_number == str(order_number))
        )

    def get_for_customer(
        self,
        order_number: OrderNumber,
        customer_id: CustomerId,
    ) -> Order | None:
        return self._first(
            self._base_query().where(
                OrderModel.order_number == str(order_number),
                OrderModel.customer_id == str(customer_id),
            )
        )

    def get_for_restaurant(
        self,
        order_number: OrderNumber,
        restaurant_id: RestaurantId,
    ) -> Order | None:
        return self._first(
            self._base_query().where(
                OrderModel.order_number == str(order_number),
                OrderModel.restaurant_id == str(restaurant_id),
            )
        )

    def update_status_with_version(self, order: Order, expected_version: int) -> Order:
        statement = (
            update(OrderModel)
            .where(
                OrderModel.order_number == str(order.order_number),
                OrderModel.version == expected_version,
            )
            .values(
                status=order.status.value,
                restaurant_note=order.restaurant_note,
                updated_at=order.updated_at,
                version=OrderModel.version + 1,
            )
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(
                    f"order {order.order_number} version conflict"
                )
            session.commit()

        updated = self.get(order.order_number)
        if updated is None:
            raise RuntimeError(f"order {order.order_number} not found after status update")
        return updated

    def list_for_customer(
        self,
        customer_id: CustomerId,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        statement = self._base_query().where(OrderModel.customer_id == str(customer_id))
        return self._page(statement, limit, cursor)

    def list_for_restaurant(
        self,
        restaurant_id: RestaurantId,
        status: OrderStatus | None,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        statement = self._base_query().where(OrderModel.restaurant_id == str(restaurant_id))
        if status is not None:
            statement = statement.where(OrderModel.status == status.value)
        return self._page(statement, limit, cursor)

    def _base_query(self) -> Select[tuple[OrderModel]]:
        return select(OrderModel).options(selectinload(OrderModel.items))

    def _first(self, statement: Select[tuple[OrderModel]]) -> Order | None:
        with Session(self._engine) as session:
            model = session.execute(statement.limit(1)).scalar_one_or_none()
            if model is None:
                return None
            return self._to_domain(model)

    def _page(
        self,
        statement: Select[tuple[OrderModel]],
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        cursor_parts = _decode_cursor(cursor) if cursor else None
        if cursor_parts is not None:
            cursor_created_at, cursor_order_number = cursor_parts
            statement = statement.where(
                or_(
                    OrderModel.created_at < cursor_created_at,
                    and_(
                        OrderModel.created_at == cursor_created_at,
                        OrderModel.order_number < cursor_order_number,
                    ),
                )
            )

        statement = statement.order_by(
            OrderModel.created_at.desc(),
            OrderModel.order_number.desc(),
        ).limit(limit + 1)

        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
            has_more = len(models) > limit
            page_models = models[:limit]
            orders = [self._to_domain(model) for model in page_models]

        next_cursor: str | None = None
        if has_more and page_models:
            last = page_models[-1]
            next_cursor = _encode_cursor(last.created_at, last.order_number)
        return orders, next_cursor

    def _to_model(self, order: Order) -> OrderModel:
        model = OrderModel(
            order_number=str(order.order_number),
            customer_id=str(order.customer_id),
            restaurant_id=str(order.restaurant_id),
            customer_details={
                "first_name": order.customer_details.first_name,
                "last_name": order.customer_details.last_name,
                "email": order.customer_details.email,
                "phone": order.customer_details.phone,
            },
            restaurant_details={
                "name": order.restaurant_details.name,
                "phone": order.restaurant_details.phone,
                "email": order.restaurant_details.email,
                "image_url": order.restaurant_details.image_url,
                "address": _address_to_json(order.restaurant_details.address),
            },
            currency=order.total.currency,
            subtotal_cents=order.subtotal.amount_cents,
            tax_rate=order.tax_rate,
            tax_amount_cents=order.tax_amount.amount_cents,
            delivery_fee_cents=(
                order.delivery_fee.amount_cents if order.delivery_fee is not None else None
            ),
            total_cents=order.total.amount_cents,
            is_delivery=order.is_delivery,
            delivery_address=(
                _address_to_json(order.delivery_address)
                if order.delivery_address is not None
                else None
            ),
            status=order.status.value,
            customer_note=order.customer_note,
            restaurant_note=order.restaurant_note,
            version=order.version,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        model.items = [
            OrderItemModel(
                position=position,
                dish_id=str(item.dish_id),
                name=item.name,
                size=item.size,
                unit_price_cents=item.unit_price.amount_cents,
                quantity=item.quantity,
                total_price_cents=item.total_price.amount_cents,
                category=item.category,
                ingredients=list(item.ingredients),
                image_url=item.image_url,
            )
            for position, item in enumerate(order.items)
        ]
        return model

    def _to_domain(self, model: OrderModel) -> Order:
        currency = model.currency
        customer = model.customer_details
        restaurant = model.restaurant_details
        items = [
            OrderItem(
                dish_id=DishId(item.dish_id),
                name=item.name,
                size=item.size,
                unit_price=Money(amount_cents=item.unit_price_cents, currency=currency),
                quantity=item.quantity,
                total_price=Money(amount_cents=item.total_price_cents, currency=currency),
                category=item.category,
                ingredients=list(item.ingredients or []),
                image_url=item.image_url,
            )
            for item in model.items
        ]
        return Order(
            order_number=OrderNumber(model.order_number),
            customer_id=CustomerId(model.customer_id),
            restaurant_id=RestaurantId(model.restaurant_id),
            customer_details=CustomerDetails(
                first_name=customer["first_name"],
                last_name=customer["last_name"],
                email=customer["email"],
                phone=customer["phone"],
            ),
            restaurant_details=RestaurantDetails(
                name=restaurant["name"],
                phone=restaurant["phone"],
                email=restaurant["email"],
                image_url=restaurant.get("image_url"),
                address=_address_from_json(restaurant["address"]),
            ),
            items=items,
            subtotal=Money(amount_cents=model.subtotal_cents, currency=currency),
            tax_rate=Decimal(model.tax_rate),
            tax_amount=Money(amount_cents=model.tax_amount_cents, currency=currency),
            delivery_fee=(
                Money(amount_cents=model.delivery_fee_cents, currency=currency)
                if model.delivery_fee_cents is not None
                else None
            ),
            total=Money(amount_cents=model.total_cents, currency=currency),
            is_delivery=model.is_delivery,
            delivery_address=(
                _address_from_json(model.delivery_address)
                if model.delivery_address is not None
                else None
            ),
            status=OrderStatus(model.status),
            customer_note=model.customer_note,
            restaurant_note=model.restaurant_note,
            version=model.version,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )


def _address_to_json(address: Address) -> dict[str, Any]:
    return {
        "label": address.label,
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "country": address.country,
        "zip_code": address.zip_code,
    }


def _address_from_json(raw: dict[str, Any]) -> Address:
    return Address(
        label=raw.get("label"),
        street=raw["street"],
        city=raw["city"],
        state=raw["state"],
        country=raw["country"],
        zip_code=raw["zip_code"],
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _encode_cursor(created_at: datetime, order_number: str) -> str:
    payload = f"{_as_utc(created_at).isoformat()}|{order_number}"
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def _decode_cursor(cursor: str) -> tuple[datetime, str]:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
        created_at_raw, order_number = raw.split("|", 1)
        return _as_utc(datetime.fromisoformat(created_at_raw)), order_number
    except Exception as exc:
        raise InvalidCursorError("invalid cursor") from exc
