from __future__ import annotations

import sys
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import mop.api.routes.health as health_route
from mop.api.main import create_app
from mop.api.middleware.request_id import resolve_request_id
from mop.infrastructure.observability.otel import service_resource


class _StubBroker:
    """Unconfigured broker: no consumers start, ping answers as told."""

    is_configured = False

    def __init__(self, reachable: bool) -> None:
        self._reachable = reachable

    def connect(self) -> None:
        return None

    def ping(self) -> bool:
        return self._reachable

    async def close(self) -> None:
        return None


def test_live_health_endpoint() -> None:
    with TestClient(create_app(_StubBroker(reachable=True))) as client:
        response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_health_endpoint_healthy_with_mocks(monkeypatch) -> None:
    monkeypatch.setattr(health_route, "ping_database", lambda timeout_seconds=1.0: True)

    with TestClient(create_app(_StubBroker(reachable=True))) as client:
        response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reports_each_failed_dependency(monkeypatch) -> None:
    monkeypatch.setattr(health_route, "ping_database", lambda timeout_seconds=1.0: True)

    with TestClient(create_app(_StubBroker(reachable=False))) as client:
        response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {
        "status": "unavailable",
        "checks": {"database": True, "redis": False},
    }


def test_service_role_limits_mounted_routes() -> None:
    app = create_app(_StubBroker(reachable=True), service_role="customer")
    paths = {route.path for route in app.routes}

    assert "/v1/customers/{customer_id}/orders" in paths
    assert "/v1/restaurants/{restaurant_id}/orders" not in paths


def test_request_id_is_echoed_when_sane_and_replaced_otherwise() -> None:
    with TestClient(create_app(_StubBroker(reachable=True))) as client:
        echoed = client.get("/health/live", headers={"X-Request-Id": "checkout-42"})
        oversized = client.get("/health/live", headers={"X-Request-Id": "x" * 300})
        spaced = client.get("/health/live", headers={"X-Request-Id": "a b"})

    assert echoed.headers["X-Request-Id"] == "checkout-42"
    assert len(oversized.headers["X-Request-Id"]) == 36
    assert spaced.headers["X-Request-Id"] != "a b"


def test_resolve_request_id_mints_when_missing() -> None:
    assert resolve_request_id("  trace-1  ") == "trace-1"
    assert resolve_request_id(None) != resolve_request_id(None)


def test_trace_resource_names_the_service_role(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "Staging")
    monkeypatch.delenv("OTEL_SERVICE_NAME", raising=False)

    attributes = service_resource({"restaurant", "customer"}).attributes

    assert attributes["service.name"] == "mop-backend"
    assert attributes["deployment.environment"] == "staging"
    assert attributes["mop.service_role"] == "customer,restaurant"
