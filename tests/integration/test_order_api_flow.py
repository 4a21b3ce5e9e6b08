from __future__ import annotations

import sys
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from flow_helpers import DELIVERY_CART, receive_json, wait_for_listeners, wait_until

from mop.api.main import create_app
from mop.application.ports.notifier import ClientRole
from mop.infrastructure.db.models.directory import CustomerAddressModel, RestaurantModel
from mop.infrastructure.messaging.broker import BrokerClient

CUSTOMER_ORDERS = "/v1/customers/cus_001"
RESTAURANT_ORDERS = "/v1/restaurants/rst_001"


def _status_seen_by_restaurant(client: TestClient, order_number: str, restaurant: str = "rst_001"):
    response = client.get(f"/v1/restaurants/{restaurant}/orders/{order_number}")
    assert response.status_code == 200
    return response.json()["status"]


def test_order_travels_from_checkout_to_restaurant_and_back(
    app: FastAPI, client: TestClient
) -> None:
    with client.websocket_connect("/ws?role=restaurant") as restaurant_ws, \
            client.websocket_connect("/ws?role=customer") as customer_ws:
        wait_for_listeners(app, ClientRole.RESTAURANT)
        wait_for_listeners(app, ClientRole.CUSTOMER)

        created = client.post(f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders", json=DELIVERY_CART)
        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "new"
        assert body["total"] == {"amountCents": 3110, "currency": "USD"}
        assert body["deliveryFee"]["amountCents"] == 0
        assert body["taxRate"] == 7.25
        order_number = body["orderNumber"]

        announced = receive_json(restaurant_ws)
        assert announced["event"] == "new_order"
        assert announced["payload"]["orderNumber"] == order_number
        assert announced["payload"]["status"] == "received"

        assert _status_seen_by_restaurant(client, order_number) == "received"

        updated = client.put(
            f"{RESTAURANT_ORDERS}/orders/{order_number}/status",
            json={"status": "preparing"},
        )
        assert updated.status_code == 200
        assert updated.json()["version"] == 3

        status_update = receive_json(customer_ws)
        assert status_update["event"] == "order_status_update"
        assert status_update["payload"]["oldStatus"] == "received"
        assert status_update["payload"]["newStatus"] == "preparing"

    too_late = client.post(f"{CUSTOMER_ORDERS}/orders/{order_number}/cancel")
    assert too_late.status_code == 400
    assert too_late.json()["error"]["code"] == "ORDER_NOT_CANCELLABLE"


def test_customer_cancellation_reaches_restaurant(app: FastAPI, client: TestClient) -> None:
    with client.websocket_connect("/ws?role=restaurant") as restaurant_ws:
        wait_for_listeners(app, ClientRole.RESTAURANT)

        created = client.post(
            f"{CUSTOMER_ORDERS}/restaurants/rst_002/orders",
            json={
                "items": [{"dishId": "pr_dsh_001", "sizeId": "pr_dsh_001_s", "quantity": 1}],
                "isDelivery": False,
                "customerNote": "No basil",
            },
        )
        assert created.status_code == 201
        body = created.json()
        assert body["taxRate"] == 5.0
        assert body["total"]["amountCents"] == 840
        assert "deliveryFee" not in body
        assert "deliveryAddress" not in body
        order_number = body["orderNumber"]

        assert receive_json(restaurant_ws)["event"] == "new_order"

        cancelled = client.post(f"{CUSTOMER_ORDERS}/orders/{order_number}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        notice = receive_json(restaurant_ws)
        assert notice["event"] == "order_cancelled"
        assert notice["payload"]["orderNumber"] == order_number

    assert _status_seen_by_restaurant(client, order_number, "rst_002") == "cancelled"


def test_checkout_rejections_use_stable_codes(client: TestClient) -> None:
    cases = [
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {"items": [], "isDelivery": False},
            400,
            "EMPTY_CART",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {"items": [{"dishId": "dsh_001", "sizeId": "dsh_001_l", "quantity": -2}], "isDelivery": False},
            400,
            "INVALID_CART",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {"items": [{"dishId": "dsh_001", "sizeId": "dsh_001_xl", "quantity": 1}], "isDelivery": False},
            400,
            "INVALID_DISH_SIZE",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {**DELIVERY_CART, "addressId": None},
            400,
            "DELIVERY_ADDRESS_REQUIRED",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {**DELIVERY_CART, "addressId": "adr_404"},
            400,
            "INVALID_DELIVERY_ADDRESS",
        ),
        (
            "/v1/customers/cus_404/restaurants/rst_001/orders",
            DELIVERY_CART,
            404,
            "CUSTOMER_NOT_FOUND",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_404/orders",
            DELIVERY_CART,
            404,
            "RESTAURANT_NOT_FOUND",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_003/orders",
            {**DELIVERY_CART, "items": [{"dishId": "dsh_001", "sizeId": "dsh_001_l", "quantity": 1}]},
            400,
            "RESTAURANT_ADDRESS_INVALID",
        ),
        (
            "/v1/customers/cus_001/restaurants/rst_001/orders",
            {"isDelivery": "sometimes"},
            400,
            "INVALID_REQUEST",
        ),
    ]
    for path, payload, expected_status, expected_code in cases:
        response = client.post(path, json=payload)
        assert response.status_code == expected_status, (expected_code, response.text)
        assert response.json()["error"]["code"] == expected_code


def test_unavailable_dishes_are_listed(client: TestClient) -> None:
    response = client.post(
        f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders",
        json={
            "items": [
                {"dishId": "dsh_003", "sizeId": "dsh_003_r", "quantity": 1},
                {"dishId": "pr_dsh_002", "sizeId": "pr_dsh_002_s", "quantity": 1},
            ],
            "isDelivery": False,
        },
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "DISH_UNAVAILABLE"
    assert error["details"] == {"unavailableDishIds": ["dsh_003", "pr_dsh_002"]}


def test_restaurant_status_rules(client: TestClient) -> None:
    created = client.post(f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders", json=DELIVERY_CART)
    order_number = created.json()["orderNumber"]
    wait_until(lambda: _status_seen_by_restaurant(client, order_number) == "received")
    status_url = f"{RESTAURANT_ORDERS}/orders/{order_number}/status"

    same = client.put(status_url, json={"status": "received"})
    assert same.json()["error"]["code"] == "SAME_STATUS"

    wrong_kind = client.put(status_url, json={"status": "pickup_ready"})
    assert wrong_kind.status_code == 400
    assert wrong_kind.json()["error"]["code"] == "INVALID_STATUS"
    assert "on_the_way" in wrong_kind.json()["error"]["details"]["validStatuses"]

    no_note = client.put(status_url, json={"status": "cancelled"})
    assert no_note.json()["error"]["code"] == "CANCELLATION_NOTE_REQUIRED"

    cancelled = client.put(status_url, json={"status": "cancelled", "restaurantNote": "Oven broke"})
    assert cancelled.status_code == 200
    assert cancelled.json()["restaurantNote"] == "Oven broke"

    after = client.put(status_url, json={"status": "preparing"})
    assert after.json()["error"]["code"] == "ORDER_ALREADY_CANCELLED"

    foreign = client.put(
        f"/v1/restaurants/rst_002/orders/{order_number}/status",
        json={"status": "preparing"},
    )
    assert foreign.status_code == 404
    assert foreign.json()["error"]["code"] == "ORDER_NOT_FOUND"


def test_order_lists_page_newest_first(client: TestClient) -> None:
    numbers = []
    for _ in range(3):
        created = client.post(
            f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders", json=DELIVERY_CART
        )
        assert created.status_code == 201
        numbers.append(created.json()["orderNumber"])

    first = client.get(f"{CUSTOMER_ORDERS}/orders", params={"limit": 2}).json()
    assert [o["orderNumber"] for o in first["orders"]] == numbers[::-1][:2]
    assert first["orders"][0]["items"] == ["2 x Margherita Pizza (Large)", "1 x Caesar Salad (Small)"]
    assert first["orders"][0]["deliveryType"] == "Delivery"

    rest = client.get(
        f"{CUSTOMER_ORDERS}/orders", params={"limit": 2, "cursor": first["nextCursor"]}
    ).json()
    assert [o["orderNumber"] for o in rest["orders"]] == numbers[::-1][2:]
    assert rest["nextCursor"] is None

    wait_until(
        lambda: len(
            client.get(f"{RESTAURANT_ORDERS}/orders", params={"status": "received"}).json()["orders"]
        )
        == 3
    )

    bad_status = client.get(f"{RESTAURANT_ORDERS}/orders", params={"status": "lost"})
    assert bad_status.json()["error"]["code"] == "INVALID_STATUS"
    bad_cursor = client.get(f"{CUSTOMER_ORDERS}/orders", params={"cursor": "%%%"})
    assert bad_cursor.json()["error"]["code"] == "INVALID_CURSOR"
    too_big = client.get(f"{CUSTOMER_ORDERS}/orders", params={"limit": 500})
    assert too_big.status_code == 400


def test_orders_are_accepted_while_broker_is_down(engine: Engine) -> None:
    app = create_app(BrokerClient(), service_role="customer")
    with TestClient(app) as client:
        created = client.post(f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders", json=DELIVERY_CART)
        assert created.status_code == 201

        fetched = client.get(f"{CUSTOMER_ORDERS}/orders/{created.json()['orderNumber']}")
        assert fetched.json()["status"] == "new"

        ready = client.get("/health/ready")
        assert ready.status_code == 503
        assert ready.json()["checks"] == {"database": True, "redis": False}


def test_restaurant_without_state_prices_pickup_at_default_rate(
    engine: Engine, client: TestClient
) -> None:
    with Session(engine) as session:
        restaurant = session.get(RestaurantModel, "rst_001")
        restaurant.address = {key: value for key, value in restaurant.address.items() if key != "state"}
        session.commit()

    response = client.post(
        f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders",
        json={**DELIVERY_CART, "isDelivery": False, "addressId": None},
    )

    assert response.status_code == 201, response.text
    assert response.json()["taxRate"] == 5.0
    assert response.json()["restaurantDetails"]["address"]["state"] == ""


def test_incomplete_saved_address_only_blocks_its_own_delivery(
    engine: Engine, client: TestClient
) -> None:
    with Session(engine) as session:
        session.add(
            CustomerAddressModel(
                id="adr_009",
                customer_id="cus_001",
                label="Cabin",
                street="1 Lake Rd",
                city="Tahoe City",
                state="CA",
                country="",
                zip_code="96145",
            )
        )
        session.commit()

    pickup = client.post(
        f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders",
        json={**DELIVERY_CART, "isDelivery": False, "addressId": None},
    )
    assert pickup.status_code == 201, pickup.text

    home = client.post(f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders", json=DELIVERY_CART)
    assert home.status_code == 201, home.text

    cabin = client.post(
        f"{CUSTOMER_ORDERS}/restaurants/rst_001/orders",
        json={**DELIVERY_CART, "addressId": "adr_009"},
    )
    assert cabin.status_code == 400
    assert cabin.json()["error"]["code"] == "INVALID_DELIVERY_ADDRESS"
