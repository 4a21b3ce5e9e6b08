from __future__ import annotations

from dataclasses import dataclass, field

from mop.domain.common.address import Address
from mop.domain.common.ids import AddressId, CustomerId, RestaurantId


@dataclass(frozen=True)
class SavedAddress:
    address_id: AddressId
    address: Address


@dataclass(frozen=True)
class CustomerProfile:
    customer_id: CustomerId
    first_name: str
    last_name: str
    email: str
    phone: str
    addresses: list[SavedAddress] = field(default_factory=list)

    def find_address(self, address_id: str) -> Address | None:
        for saved in self.addresses:
            if str(saved.address_id) == address_id:
                return saved.address
        return None


@dataclass(frozen=True)
class RestaurantProfile:
    restaurant_id: RestaurantId
    name: str
    phone: str
    email: str
    image_url: str | None
    address: Address | None
