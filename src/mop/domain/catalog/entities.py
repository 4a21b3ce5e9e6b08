from __future__ import annotations

from dataclasses import dataclass, field

from mop.domain.common.ids import DishId, DishSizeId, RestaurantId
from mop.domain.common.money import Money


@dataclass(frozen=True)
class DishSize:
    size_id: DishSizeId
    label: str
    price: Money


@dataclass(frozen=True)
class Dish:
    dish_id: DishId
    restaurant_id: RestaurantId
    name: str
    category: str
    sizes: list[DishSize] = field(default_factory=list)
    ingredients: list[str] = field(default_factory=list)
    image_url: str | None = None
    is_available: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")

    def size(self, size_id: str) -> DishSize | None:
        for size in self.sizes:
            if str(size.size_id) == size_id:
                return size
        return None
