from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import fakeredis
import fakeredis.aioredis
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from mop.infrastructure.messaging.broker import BrokerClient
from mop.infrastructure.messaging.redis_stream_consumer import StreamConsumer
from mop.infrastructure.messaging.redis_stream_publisher import (
    DEFAULT_STREAM_MAXLEN,
    RedisStreamPublisher,
    stream_maxlen_from_env,
)

TOPIC = "orders.created"
GROUP = "restaurant-orders"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def broker() -> BrokerClient:
    server = fakeredis.FakeServer()
    return BrokerClient(
        sync_client=fakeredis.FakeRedis(server=server),
        async_client=fakeredis.aioredis.FakeRedis(server=server),
    )


class _Collector:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.seen: list[str] = []
        self._fail_on = fail_on or set()

    async def __call__(self, payload: str) -> None:
        self.seen.append(payload)
        if payload in self._fail_on:
            raise RuntimeError(f"cannot handle {payload}")


def _consumer(broker: BrokerClient, handler, name: str = "worker-1") -> StreamConsumer:
    return StreamConsumer(
        broker.async_client,
        TOPIC,
        GROUP,
        name,
        handler,
        block_ms=None,
        poll_interval=0.01,
    )


async def _pending_count(broker: BrokerClient) -> int:
    info = await broker.async_client.xpending(TOPIC, GROUP)
    return int(info["pending"])


def test_publish_appends_keyed_entry(broker: BrokerClient) -> None:
    result = RedisStreamPublisher(broker, maxlen=100).publish(TOPIC, "O1234567", '{"a":1}')

    assert result.ok is True
    assert result.message_id
    entries = broker.sync_client.xrange(TOPIC)
    assert len(entries) == 1
    _, fields = entries[0]
    assert fields[b"key"] == b"O1234567"
    assert fields[b"payload"] == b'{"a":1}'


def test_publish_without_connection_reports_failure() -> None:
    result = RedisStreamPublisher(BrokerClient(), maxlen=100).publish(TOPIC, "O1234567", "{}")

    assert result.ok is False
    assert result.error == "broker is not connected"


def test_stream_maxlen_from_env(monkeypatch) -> None:
    monkeypatch.setenv("STREAM_MAXLEN", "500")
    assert stream_maxlen_from_env() == 500
    monkeypatch.setenv("STREAM_MAXLEN", "many")
    assert stream_maxlen_from_env() == DEFAULT_STREAM_MAXLEN


@pytest.mark.anyio
async def test_consumer_handles_and_acks_published_entries(broker: BrokerClient) -> None:
    collector = _Collector()
    consumer = _consumer(broker, collector)
    await consumer.ensure_group()
    await consumer.ensure_group()

    publisher = RedisStreamPublisher(broker, maxlen=100)
    publisher.publish(TOPIC, "O1", "first")
    publisher.publish(TOPIC, "O2", "second")

    assert await consumer.poll_once() == 2
    assert await consumer.poll_once() == 0
    assert collector.seen == ["first", "second"]
    assert await _pending_count(broker) == 0


@pytest.mark.anyio
async def test_failing_handler_still_acks_and_later_entries_flow(broker: BrokerClient) -> None:
    collector = _Collector(fail_on={"poison"})
    consumer = _consumer(broker, collector)
    await consumer.ensure_group()

    publisher = RedisStreamPublisher(broker, maxlen=100)
    publisher.publish(TOPIC, "O1", "poison")
    publisher.publish(TOPIC, "O2", "healthy")

    await consumer.poll_once()
    await consumer.poll_once()

    assert collector.seen == ["poison", "healthy"]
    assert await _pending_count(broker) == 0


@pytest.mark.anyio
async def test_unacked_entries_are_redelivered_after_restart(broker: BrokerClient) -> None:
    await _consumer(broker, _Collector()).ensure_group()
    RedisStreamPublisher(broker, maxlen=100).publish(TOPIC, "O1", "in-flight")
    # delivered to worker-1, which died before acknowledging
    await broker.async_client.xreadgroup(GROUP, "worker-1", {TOPIC: ">"}, count=10)
    assert await _pending_count(broker) == 1

    collector = _Collector()
    restarted = _consumer(broker, collector)

    assert await restarted.poll_once() == 1
    assert collector.seen == ["in-flight"]
    assert await _pending_count(broker) == 0


@pytest.mark.anyio
async def test_run_loop_consumes_until_cancelled(broker: BrokerClient) -> None:
    collector = _Collector()
    consumer = _consumer(broker, collector)
    task = asyncio.create_task(consumer.run())
    try:
        await asyncio.sleep(0.05)
        RedisStreamPublisher(broker, maxlen=100).publish(TOPIC, "O1", "live")
        for _ in range(100):
            if collector.seen:
                break
            await asyncio.sleep(0.01)
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert collector.seen == ["live"]


@pytest.mark.anyio
async def test_entry_interrupted_by_shutdown_stays_pending(broker: BrokerClient) -> None:
    started = asyncio.Event()
    finished: list[str] = []

    async def slow_handler(payload: str) -> None:
        started.set()
        await asyncio.sleep(10)
        finished.append(payload)

    consumer = _consumer(broker, slow_handler)
    task = asyncio.create_task(consumer.run())
    try:
        await asyncio.sleep(0.05)
        RedisStreamPublisher(broker, maxlen=100).publish(TOPIC, "O1", "interrupted")
        await asyncio.wait_for(started.wait(), timeout=2)
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert finished == []
    assert await _pending_count(broker) == 1

    collector = _Collector()
    assert await _consumer(broker, collector).poll_once() == 1
    assert collector.seen == ["interrupted"]
    assert await _pending_count(broker) == 0
