from __future__ import annotations

import logging
import os

import redis
from redis import asyncio as redis_asyncio

logger = logging.getLogger(__name__)


class BrokerNotConnectedError(RuntimeError):
    pass


class BrokerClient:
    """Owns the Redis connections used for the event streams.

    Built once per process, connected in the app lifespan and closed on
    shutdown. The sync client serves publishers running in request threads;
    the async client serves the consumer loops.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        timeout_seconds: float = 1.0,
        *,
        sync_client: redis.Redis | None = None,
        async_client: redis_asyncio.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._timeout_seconds = timeout_seconds
        self._sync_client = sync_client
        self._async_client = async_client

    @classmethod
    def from_env(cls, timeout_seconds: float = 1.0) -> BrokerClient:
        return cls(os.getenv("REDIS_URL"), timeout_seconds=timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return bool(self._redis_url) or self._sync_client is not None

    @property
    def sync_client(self) -> redis.Redis:
        if self._sync_client is None:
            raise BrokerNotConnectedError("broker is not connected")
        return self._sync_client

    @property
    def async_client(self) -> redis_asyncio.Redis:
        if self._async_client is None:
            raise BrokerNotConnectedError("broker is not connected")
        return self._async_client

    def connect(self) -> None:
        if not self._redis_url:
            if self._sync_client is None:
                logger.warning("broker_not_configured", extra={"reason": "REDIS_URL missing"})
            return
        if self._sync_client is None:
            self._sync_client = redis.Redis.from_url(
                self._redis_url,
                socket_connect_timeout=self._timeout_seconds,
                socket_timeout=self._timeout_seconds,
            )
        if self._async_client is None:
            # No read timeout: consumers park in XREADGROUP BLOCK longer than timeout_seconds.
            self._async_client = redis_asyncio.from_url(
                self._redis_url,
                socket_connect_timeout=self._timeout_seconds,
            )
        logger.info("broker_connected")

    def ping(self) -> bool:
        if self._sync_client is None:
            return False
        try:
            return bool(self._sync_client.ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        if self._async_client is not None:
            client_aclose = getattr(self._async_client, "aclose", None)
            if callable(client_aclose):
                await client_aclose()
            else:
                await self._async_client.close()
            self._async_client = None
        if self._sync_client is not None:
            self._sync_client.close()
            self._sync_client = None
        logger.info("broker_closed")
