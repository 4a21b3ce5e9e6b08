from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from mop.api.main import create_app
from mop.infrastructure.db import session as db_session
from mop.infrastructure.db.models import catalog, order  # noqa: F401
from mop.infrastructure.db.models.directory import Base
from mop.infrastructure.messaging.broker import BrokerClient
from mop.tools.seed import seed


@pytest.fixture
def engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'mop.db'}")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    db_session._build_engine.cache_clear()

    engine = db_session.get_engine()
    Base.metadata.create_all(engine)
    seed(engine)
    yield engine
    engine.dispose()
    db_session._build_engine.cache_clear()


@pytest.fixture
def broker() -> BrokerClient:
    server = fakeredis.FakeServer()
    return BrokerClient(
        sync_client=fakeredis.FakeRedis(server=server),
        async_client=fakeredis.aioredis.FakeRedis(server=server),
    )


@pytest.fixture
def app(engine: Engine, broker: BrokerClient) -> FastAPI:
    return create_app(
        broker,
        service_role="all",
        consumer_block_ms=None,
        consumer_poll_interval=0.02,
    )


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client
