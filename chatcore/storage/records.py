"""Moderation flag and token usage records.

The orchestration core writes two kinds of durable records: a flag for every
moderation match and a usage entry for every answered request.  Both are
fire-and-forget from the core's point of view.  Flags are later reviewed by
an operator, which marks them with the reviewer and a decision.

Implementations
---------------
- ``InMemoryRecordStore`` – list-backed, for dev / testing
- ``RedisRecordStore``    – see :mod:`chatcore.storage.redis_records`
- Swap in Postgres / Supabase / etc. by subclassing ``BaseRecordStore``
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from chatcore.config.models import StorageConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.models.domain import ModerationVerdict, ReviewDecision, Severity
from chatcore.providers.factory import provider_component, register_provider


def _now() -> datetime:
    return datetime.now(UTC)


class FlagRecord(BaseModel):
    """A persisted moderation flag, pending operator review."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    message_id: str | None = None
    severity: Severity
    blocked: bool
    detail: str
    reviewed: bool = False
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    decision: ReviewDecision | None = None
    created_at: datetime = Field(default_factory=_now)


class UsageRecord(BaseModel):
    """Tokens consumed by one answered request."""

    tokens: int
    model: str
    provider: str
    user_id: str | None = None
    created_at: datetime = Field(default_factory=_now)


@provider_component("storage")
class BaseRecordStore(ABC):
    """Abstract store for flag and usage records.

    Concrete subclasses implement the ``_append_*`` / ``_load_flag`` /
    ``_save_flag`` hooks; the public methods build the record models.
    """

    # -- public API -------------------------------------------------------

    async def record_flag(
        self,
        verdict: ModerationVerdict,
        user_id: str,
        message_id: str | None = None,
        detail: str = "",
    ) -> FlagRecord:
        record = FlagRecord(
            user_id=user_id,
            message_id=message_id,
            severity=verdict.severity,
            blocked=verdict.blocked,
            detail=detail,
        )
        await self._append_flag(record)
        return record

    async def review_flag(
        self,
        flag_id: str,
        reviewer_id: str,
        decision: ReviewDecision,
    ) -> FlagRecord | None:
        """Mark a flag as reviewed.  Returns ``None`` for an unknown id."""
        record = await self._load_flag(flag_id)
        if record is None:
            return None
        reviewed = record.model_copy(
            update={
                "reviewed": True,
                "reviewed_by": reviewer_id,
                "reviewed_at": _now(),
                "decision": decision,
            }
        )
        await self._save_flag(reviewed)
        return reviewed

    async def record_usage(
        self,
        tokens: int,
        model: str,
        provider: str,
        user_id: str | None = None,
    ) -> UsageRecord:
        record = UsageRecord(tokens=tokens, model=model, provider=provider, user_id=user_id)
        await self._append_usage(record)
        return record

    async def close(self) -> None:
        """Release backend resources.  Call during app shutdown."""

    # -- backend hooks ----------------------------------------------------

    @abstractmethod
    async def _append_flag(self, record: FlagRecord) -> None:
        """Persist a new flag record."""

    @abstractmethod
    async def _load_flag(self, flag_id: str) -> FlagRecord | None:
        """Fetch a flag record by id."""

    @abstractmethod
    async def _save_flag(self, record: FlagRecord) -> None:
        """Overwrite an existing flag record."""

    @abstractmethod
    async def _append_usage(self, record: UsageRecord) -> None:
        """Persist a usage record."""


@register_provider("storage", "memory")
class InMemoryRecordStore(BaseRecordStore):
    """List-backed record store with a size cap — suitable for dev/testing only."""

    def __init__(
        self,
        config: StorageConfig | None = None,
        cloud_config: None = None,
        http_pool: HttpClientPool | None = None,
        max_records: int = 10000,
    ) -> None:
        self.flags: list[FlagRecord] = []
        self.usage: list[UsageRecord] = []
        self._max_records = max_records

    async def _append_flag(self, record: FlagRecord) -> None:
        self.flags.append(record)
        del self.flags[: -self._max_records]

    async def _load_flag(self, flag_id: str) -> FlagRecord | None:
        return next((f for f in self.flags if f.id == flag_id), None)

    async def _save_flag(self, record: FlagRecord) -> None:
        for index, existing in enumerate(self.flags):
            if existing.id == record.id:
                self.flags[index] = record
                return

    async def _append_usage(self, record: UsageRecord) -> None:
        self.usage.append(record)
        del self.usage[: -self._max_records]
