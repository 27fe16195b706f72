"""Redis-backed record store for moderation flags and token usage.

Uses ``redis.asyncio`` for non-blocking I/O.  Each flag is stored as a JSON
blob under its own key (expiring after ``flagTtlDays``) so it can be looked up
and updated when an operator reviews it; a capped list holds the flag ids,
newest first.  Usage is pushed onto a capped list and additionally aggregated
into per-provider and per-user hashes so dashboards can read totals without
scanning.

Connection pooling is handled automatically by ``redis.asyncio`` —
the underlying ``ConnectionPool`` reuses TCP connections across calls.

Usage::

    from chatcore.storage.redis_records import RedisRecordStore

    store = RedisRecordStore(StorageConfig(provider="redis", url="redis://redis-svc:6379/0"))
"""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from chatcore.config.models import StorageConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.providers.factory import register_provider
from chatcore.services.exceptions import InfrastructureFailure
from chatcore.storage.records import BaseRecordStore, FlagRecord, UsageRecord


@register_provider("storage", "redis")
class RedisRecordStore(BaseRecordStore):
    """Redis-backed record store with capped lists."""

    def __init__(
        self,
        config: StorageConfig,
        cloud_config: None = None,
        http_pool: HttpClientPool | None = None,
        *,
        max_records: int = 100_000,
        max_connections: int = 50,
    ) -> None:
        self._redis = aioredis.from_url(
            config.url,
            max_connections=max_connections,
            decode_responses=False,
        )
        self._prefix = config.key_prefix
        self._flag_ttl = config.flag_ttl_days * 86400
        self._max_records = max_records

    def _key(self, *parts: str) -> str:
        return self._prefix + ":".join(parts)

    async def _append_flag(self, record: FlagRecord) -> None:
        key = self._key("flags")
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(self._key("flag", record.id), record.model_dump_json(), ex=self._flag_ttl)
            pipe.lpush(key, record.id)
            pipe.ltrim(key, 0, self._max_records - 1)
            await self._execute(pipe)

    async def _load_flag(self, flag_id: str) -> FlagRecord | None:
        try:
            raw = await self._redis.get(self._key("flag", flag_id))
        except RedisError as exc:
            raise InfrastructureFailure(f"Redis read failed: {exc}") from exc
        if raw is None:
            return None
        return FlagRecord.model_validate_json(raw)

    async def _save_flag(self, record: FlagRecord) -> None:
        try:
            # xx: an expired flag is not recreated by a late review
            await self._redis.set(
                self._key("flag", record.id), record.model_dump_json(), xx=True, keepttl=True
            )
        except RedisError as exc:
            raise InfrastructureFailure(f"Redis write failed: {exc}") from exc

    async def _append_usage(self, record: UsageRecord) -> None:
        key = self._key("usage")
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.lpush(key, record.model_dump_json())
            pipe.ltrim(key, 0, self._max_records - 1)
            pipe.hincrby(self._key("usage", "by_provider"), record.provider, record.tokens)
            if record.user_id:
                pipe.hincrby(self._key("usage", "by_user"), record.user_id, record.tokens)
            await self._execute(pipe)

    @staticmethod
    async def _execute(pipe) -> None:
        try:
            await pipe.execute()
        except RedisError as exc:
            raise InfrastructureFailure(f"Redis write failed: {exc}") from exc

    async def close(self) -> None:
        """Close the Redis connection pool.  Call during app shutdown."""
        await self._redis.aclose()
