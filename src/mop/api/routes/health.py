from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from mop.infrastructure.db.session import ping_database

router = APIRouter()


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(request: Request, response: Response) -> dict[str, object]:
    database_ready = ping_database(timeout_seconds=1.0)
    redis_ready = request.app.state.broker.ping()

    if database_ready and redis_ready:
        return {"status": "ok"}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "unavailable",
        "checks": {"database": database_ready, "redis": redis_ready},
    }
