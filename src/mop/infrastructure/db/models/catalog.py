from __future__ import annotations

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mop.infrastructure.db.models.directory import Base


class DishModel(Base):
    __tablename__ = "dishes"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    restaurant_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    ingredients: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    is_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    sizes: Mapped[list["DishSizeModel"]] = relationship(
        back_populates="dish",
        cascade="all, delete-orphan",
        order_by="DishSizeModel.id",
    )


class DishSizeModel(Base):
    __tablename__ = "dish_sizes"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    dish_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("dishes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label: Mapped[str] = mapped_column(String(50), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    dish: Mapped[DishModel] = relationship(back_populates="sizes")
