from __future__ import annotations

import os

import redis

from mop.application.ports.publisher import EventPublisher, PublishResult
from mop.infrastructure.messaging.broker import BrokerClient, BrokerNotConnectedError

DEFAULT_STREAM_MAXLEN = 10_000


def stream_maxlen_from_env() -> int:
    try:
        return int(os.getenv("STREAM_MAXLEN", str(DEFAULT_STREAM_MAXLEN)))
    except ValueError:
        return DEFAULT_STREAM_MAXLEN


class RedisStreamPublisher(EventPublisher):
    """Appends events to a Redis stream named after the topic."""

    def __init__(self, broker: BrokerClient, maxlen: int | None = None) -> None:
        self._broker = broker
        self._maxlen = maxlen if maxlen is not None else stream_maxlen_from_env()

    def publish(self, topic: str, key: str, message: str) -> PublishResult:
        try:
            message_id = self._broker.sync_client.xadd(
                topic,
                {"key": key, "payload": message},
                maxlen=self._maxlen,
                approximate=True,
            )
        except (redis.RedisError, BrokerNotConnectedError) as exc:
            return PublishResult(topic=topic, key=key, ok=False, error=str(exc))

        if isinstance(message_id, bytes):
            message_id = message_id.decode("utf-8")
        return PublishResult(topic=topic, key=key, ok=True, message_id=message_id)
