"""
BioCredits — Redis Credit Store

Async Redis backend for the credit registry. Keys are prefixed per
deployment so several registries can share one Redis instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

if TYPE_CHECKING:
    from biocredits.config import RedisConfig

logger = structlog.get_logger("biocredits.clients.redis")


class RedisStore:
    """
    Async Redis client implementing the CreditStore protocol.

    Lifecycle: construct → connect() → use → close().
    compare_and_set uses WATCH/MULTI so concurrent index appends from
    separate sessions are detected instead of silently overwritten.
    """

    def __init__(self, config: RedisConfig, client: Redis | None = None) -> None:
        self._config = config
        self._client: Redis | None = client

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = Redis.from_url(
            self._config.full_url,
            decode_responses=False,
        )
        # Verify connectivity
        await self._client.ping()
        logger.info("redis_connected", prefix=self._config.prefix)

    async def close(self) -> None:
        """Close the connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    def _key(self, key: str) -> str:
        """Prefix a key with the deployment prefix."""
        return f"{self._config.prefix}:{key}"

    # ─── CreditStore ──────────────────────────────────────────────

    async def is_available(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("redis_probe_failed", error=str(e))
            return False

    async def get_data(self, key: str) -> bytes:
        raw = await self.client.get(self._key(key))
        return bytes(raw) if raw is not None else b""

    async def set_data(self, key: str, value: bytes) -> None:
        await self.client.set(self._key(key), value)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        k = self._key(key)
        async with self.client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(k)
                current = await pipe.get(k)
                if (bytes(current) if current is not None else b"") != expected:
                    await pipe.unwatch()
                    return False
                pipe.multi()
                pipe.set(k, value)
                await pipe.execute()
                return True
            except WatchError:
                logger.debug("redis_cas_conflict", key=key)
                return False

    async def health_check(self) -> dict[str, Any]:
        """Check connectivity."""
        try:
            await self.client.ping()
            return {"status": "connected", "prefix": self._config.prefix}
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {"status": "disconnected", "error": str(e)}
