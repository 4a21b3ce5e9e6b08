from __future__ import annotations

from typing import Sequence

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, selectinload

from mop.application.ports.repositories import DishCatalog
from mop.domain.catalog.entities import Dish, DishSize
from mop.domain.common.ids import DishId, DishSizeId, RestaurantId
from mop.domain.common.money import Money
from mop.infrastructure.db.models.catalog import DishModel
from mop.infrastructure.db.session import get_engine


class SqlAlchemyDishCatalog(DishCatalog):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def find_dishes(self, restaurant_id: RestaurantId, dish_ids: Sequence[DishId]) -> list[Dish]:
        if not dish_ids:
            return []
        # Dishes of other restaurants are returned too; pricing reports them as unavailable.
        statement = (
            select(DishModel)
            .options(selectinload(DishModel.sizes))
            .where(DishModel.id.in_([str(dish_id) for dish_id in dish_ids]))
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
            return [
                Dish(
                    dish_id=DishId(model.id),
                    restaurant_id=RestaurantId(model.restaurant_id),
                    name=model.name,
                    category=model.category,
                    sizes=[
                        DishSize(
                            size_id=DishSizeId(size.id),
                            label=size.label,
                            price=Money(amount_cents=size.price_cents, currency=size.currency),
                        )
                        for size in model.sizes
                    ],
                    ingredients=list(model.ingredients or []),
                    image_url=model.image_url,
                    is_available=model.is_available,
                )
                for model in models
            ]
