from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from mop.api.consumers import build_consumers, consumer_name_from_env
from mop.api.error_handling import register_exception_handlers
from mop.api.middleware.request_id import RequestIDMiddleware
from mop.api.routes.customer_orders import router as customer_orders_router
from mop.api.routes.health import router as health_router
from mop.api.routes.metrics import router as metrics_router
from mop.api.routes.restaurant_orders import router as restaurant_orders_router
from mop.api.ws.manager import ConnectionManager
from mop.api.ws.notifier import WebSocketNotifier
from mop.api.ws.routes import router as ws_router
from mop.infrastructure.messaging.broker import BrokerClient
from mop.infrastructure.observability.logging_config import configure_logging
from mop.infrastructure.observability.otel import configure_otel

logger = logging.getLogger("mop.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

SERVICE_ROLES = {
    "customer": {"customer"},
    "restaurant": {"restaurant"},
    "all": {"customer", "restaurant"},
}


def _service_roles(service_role: str | None) -> set[str]:
    raw_value = (service_role or os.getenv("SERVICE_ROLE", "all")).strip().lower()
    if raw_value not in SERVICE_ROLES:
        raise RuntimeError(f"SERVICE_ROLE must be one of {sorted(SERVICE_ROLES)}, got {raw_value}")
    return SERVICE_ROLES[raw_value]


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()

    # Dev/test: unblock everything (no credentials allowed)
    if env in {"dev", "test"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            REQUEST_COUNT.labels(method=method, path=path, status_code="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        REQUEST_COUNT.labels(method=method, path=path, status_code=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    broker: BrokerClient = app.state.broker
    broker.connect()
    app.state.ws_manager = ConnectionManager()
    notifier = WebSocketNotifier(app.state.ws_manager)

    tasks: list[asyncio.Task] = []
    if broker.is_configured:
        consumers = build_consumers(
            roles=app.state.service_roles,
            broker=broker,
            notifier=notifier,
            consumer_name=consumer_name_from_env(),
            block_ms=app.state.consumer_block_ms,
            poll_interval=app.state.consumer_poll_interval,
        )
        tasks = [asyncio.create_task(consumer.run()) for consumer in consumers]
    else:
        logger.warning("stream_consumers_not_started", extra={"reason": "REDIS_URL missing"})
    app.state.consumer_tasks = tasks
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        await broker.close()


def create_app(
    broker: BrokerClient | None = None,
    *,
    service_role: str | None = None,
    consumer_block_ms: int | None = 5000,
    consumer_poll_interval: float = 0.1,
) -> FastAPI:
    configure_logging()
    roles = _service_roles(service_role)

    app = FastAPI(title="Marketplace Order Pipeline", version="0.1.0", lifespan=lifespan)
    app.state.broker = broker or BrokerClient.from_env()
    app.state.service_roles = roles
    app.state.consumer_block_ms = consumer_block_ms
    app.state.consumer_poll_interval = consumer_poll_interval

    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    if "customer" in roles:
        app.include_router(customer_orders_router)
    if "restaurant" in roles:
        app.include_router(restaurant_orders_router)
    app.include_router(ws_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    configure_otel(app, roles)
    return app


app = create_app()
