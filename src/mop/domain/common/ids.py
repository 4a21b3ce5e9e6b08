from __future__ import annotations

from typing import NewType

RestaurantId = NewType("RestaurantId", str)
CustomerId = NewType("CustomerId", str)
AddressId = NewType("AddressId", str)
DishId = NewType("DishId", str)
DishSizeId = NewType("DishSizeId", str)
OrderNumber = NewType("OrderNumber", str)
