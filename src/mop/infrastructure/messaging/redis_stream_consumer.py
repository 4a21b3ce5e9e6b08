from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from redis import asyncio as redis_asyncio
from redis.exceptions import ResponseError

from mop.application.metrics.order_lifecycle import record_consume_failure, record_event_consumed

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], Awaitable[None]]


def _decode_value(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _entries(response: Any) -> list[tuple[Any, Any]]:
    if not response:
        return []
    streams = response.items() if isinstance(response, dict) else response
    entries: list[tuple[Any, Any]] = []
    for _, stream_entries in streams:
        if stream_entries and isinstance(stream_entries[0], list) and len(stream_entries) == 1:
            # RESP3 shape: {stream: [[entry, ...]]}
            stream_entries = stream_entries[0]
        entries.extend(stream_entries or [])
    return entries


class StreamConsumer:
    """One consumer-group subscription on one stream.

    Entries are handled one at a time. The consumer first drains its own
    pending entries (delivered before a crash, never acknowledged), then reads
    new ones. Every entry is acknowledged once its handler has returned or
    raised, so a poison message is logged and dropped instead of redelivered.
    An entry whose handler is cancelled mid-flight is left pending.
    """

    def __init__(
        self,
        client: redis_asyncio.Redis,
        topic: str,
        group: str,
        consumer_name: str,
        handler: MessageHandler,
        *,
        batch_size: int = 10,
        block_ms: int | None = 5000,
        poll_interval: float = 0.1,
    ) -> None:
        self._client = client
        self._topic = topic
        self._group = group
        self._consumer_name = consumer_name
        self._handler = handler
        self._batch_size = batch_size
        self._block_ms = block_ms
        self._poll_interval = poll_interval
        self._draining_pending = True

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def group(self) -> str:
        return self._group

    async def ensure_group(self) -> None:
        try:
            await self._client.xgroup_create(self._topic, self._group, id="0", mkstream=True)
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise

    async def poll_once(self) -> int:
        """Read and handle one batch; returns the number of entries handled."""
        if self._draining_pending:
            response = await self._client.xreadgroup(
                self._group,
                self._consumer_name,
                {self._topic: "0"},
                count=self._batch_size,
            )
            entries = _entries(response)
            if entries:
                for entry_id, fields in entries:
                    await self._handle(entry_id, fields)
                return len(entries)
            self._draining_pending = False

        response = await self._client.xreadgroup(
            self._group,
            self._consumer_name,
            {self._topic: ">"},
            count=self._batch_size,
            block=self._block_ms,
        )
        entries = _entries(response)
        for entry_id, fields in entries:
            await self._handle(entry_id, fields)
        return len(entries)

    async def run(self) -> None:
        backoff_seconds = 1.0
        while True:
            try:
                await self.ensure_group()
                self._draining_pending = True
                logger.info(
                    "stream_consumer_started",
                    extra={"topic": self._topic, "group": self._group},
                )
                backoff_seconds = 1.0
                while True:
                    handled = await self.poll_once()
                    if handled == 0 and self._block_ms is None:
                        await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                logger.info("stream_consumer_cancelled", extra={"topic": self._topic})
                raise
            except Exception:
                logger.exception(
                    "stream_consumer_error",
                    extra={"topic": self._topic, "backoff_seconds": backoff_seconds},
                )
                await asyncio.sleep(backoff_seconds)
                backoff_seconds = min(backoff_seconds * 2, 5.0)

    async def _handle(self, entry_id: Any, fields: Any) -> None:
        stream_id = _decode_value(entry_id)
        payload = None
        if fields:
            payload = _decode_value(fields.get(b"payload", fields.get("payload")))
        try:
            if payload is None:
                raise ValueError("stream entry has no payload")
            await self._handler(payload)
        except Exception:
            record_consume_failure(self._topic)
            logger.exception(
                "event_consume_failed",
                extra={"topic": self._topic, "stream_id": stream_id},
            )
        else:
            record_event_consumed(self._topic)
        # Cancellation skips the ack, so an interrupted entry stays pending for redelivery.
        await self._client.xack(self._topic, self._group, entry_id)
