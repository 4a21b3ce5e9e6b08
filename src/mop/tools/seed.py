from __future__ import annotations

from sqlalchemy import Engine, inspect
from sqlalchemy.orm import Session

from mop.infrastructure.db.models.catalog import DishModel, DishSizeModel
from mop.infrastructure.db.models.directory import (
    CustomerAddressModel,
    CustomerModel,
    RestaurantModel,
)
from mop.infrastructure.db.session import get_engine

REQUIRED_TABLES = {"restaurants", "customers", "customer_addresses", "dishes", "dish_sizes"}


def _restaurants() -> list[RestaurantModel]:
    return [
        RestaurantModel(
            id="rst_001",
            name="Downtown Test Kitchen",
            phone="415-555-0100",
            email="kitchen@example.com",
            image_url=None,
            address={
                "street": "1 Market St",
                "city": "San Francisco",
                "state": "CA",
                "country": "USA",
                "zip_code": "94105",
            },
        ),
        # PR has no entry in the tax table, so orders here fall back to the default rate.
        RestaurantModel(
            id="rst_002",
            name="Old San Juan Cafe",
            phone="787-555-0142",
            email="cafe@example.com",
            image_url=None,
            address={
                "street": "150 Calle Fortaleza",
                "city": "San Juan",
                "state": "PR",
                "country": "USA",
                "zip_code": "00901",
            },
        ),
        RestaurantModel(
            id="rst_003",
            name="Unlisted Pop-up",
            phone="212-555-0199",
            email="popup@example.com",
            image_url=None,
            address=None,
        ),
    ]


def _customers() -> list[CustomerModel]:
    customer = CustomerModel(
        id="cus_001",
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone="415-555-0111",
    )
    customer.addresses = [
        CustomerAddressModel(
            id="adr_001",
            label="Home",
            street="500 Howard St",
            city="San Francisco",
            state="CA",
            country="USA",
            zip_code="94105",
        ),
        CustomerAddressModel(
            id="adr_002",
            label="Office",
            street="20 W 34th St",
            city="New York",
            state="NY",
            country="USA",
            zip_code="10001",
        ),
    ]
    return [customer]


def _dishes() -> list[DishModel]:
    dishes: list[DishModel] = []
    for restaurant_id, prefix in (("rst_001", "dsh"), ("rst_002", "pr_dsh")):
        pizza = DishModel(
            id=f"{prefix}_001",
            restaurant_id=restaurant_id,
            name="Margherita Pizza",
            category="Pizza",
            ingredients=["tomato", "mozzarella", "basil"],
            image_url=None,
            is_available=True,
        )
        pizza.sizes = [
            DishSizeModel(id=f"{prefix}_001_l", label="Large", price_cents=1200, currency="USD"),
            DishSizeModel(id=f"{prefix}_001_s", label="Small", price_cents=800, currency="USD"),
        ]
        salad = DishModel(
            id=f"{prefix}_002",
            restaurant_id=restaurant_id,
            name="Caesar Salad",
            category="Salads",
            ingredients=["romaine", "croutons", "parmesan"],
            image_url=None,
            is_available=True,
        )
        salad.sizes = [
            DishSizeModel(id=f"{prefix}_002_s", label="Small", price_cents=500, currency="USD"),
        ]
        tiramisu = DishModel(
            id=f"{prefix}_003",
            restaurant_id=restaurant_id,
            name="Tiramisu",
            category="Desserts",
            ingredients=["espresso", "mascarpone"],
            image_url=None,
            is_available=False,
        )
        tiramisu.sizes = [
            DishSizeModel(id=f"{prefix}_003_r", label="Regular", price_cents=850, currency="USD"),
        ]
        dishes.extend([pizza, salad, tiramisu])
    return dishes


def seed(engine: Engine) -> None:
    with Session(engine) as session:
        for model in [*_restaurants(), *_customers(), *_dishes()]:
            session.merge(model)
        session.commit()


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    if not REQUIRED_TABLES.issubset(set(inspect(engine).get_table_names())):
        print("no schema yet")
        return
    seed(engine)
    print("seed complete")


if __name__ == "__main__":
    main()
