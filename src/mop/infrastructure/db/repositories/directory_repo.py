from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, selectinload

from mop.application.ports.repositories import CustomerDirectory, RestaurantDirectory
from mop.domain.common.address import Address
from mop.domain.common.ids import AddressId, CustomerId, RestaurantId
from mop.domain.directory.entities import CustomerProfile, RestaurantProfile, SavedAddress
from mop.infrastructure.db.models.directory import (
    CustomerAddressModel,
    CustomerModel,
    RestaurantModel,
)
from mop.infrastructure.db.session import get_engine


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _restaurant_address(raw: Any) -> Address | None:
    # Only a missing address blocks ordering; blank parts are priced with defaults.
    if not isinstance(raw, dict) or not raw:
        return None
    return Address(
        street=_text(raw.get("street")),
        city=_text(raw.get("city")),
        state=_text(raw.get("state")),
        country=_text(raw.get("country")),
        zip_code=_text(raw.get("zip_code")),
    )


def _saved_address(model: CustomerAddressModel) -> SavedAddress:
    return SavedAddress(
        address_id=AddressId(model.id),
        address=Address(
            label=model.label,
            street=_text(model.street),
            city=_text(model.city),
            state=_text(model.state),
            country=_text(model.country),
            zip_code=_text(model.zip_code),
        ),
    )


class SqlAlchemyCustomerDirectory(CustomerDirectory):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, customer_id: CustomerId) -> CustomerProfile | None:
        statement = (
            select(CustomerModel)
            .options(selectinload(CustomerModel.addresses))
            .where(CustomerModel.id == str(customer_id))
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
            if model is None:
                return None
            return CustomerProfile(
                customer_id=CustomerId(model.id),
                first_name=model.first_name,
                last_name=model.last_name,
                email=model.email,
                phone=model.phone,
                addresses=[_saved_address(address) for address in model.addresses],
            )


class SqlAlchemyRestaurantDirectory(RestaurantDirectory):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, restaurant_id: RestaurantId) -> RestaurantProfile | None:
        statement = select(RestaurantModel).where(RestaurantModel.id == str(restaurant_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
            if model is None:
                return None
            return RestaurantProfile(
                restaurant_id=RestaurantId(model.id),
                name=model.name,
                phone=model.phone,
                email=model.email,
                image_url=model.image_url,
                address=_restaurant_address(model.address),
            )
