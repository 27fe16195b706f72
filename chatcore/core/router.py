"""Provider router — ordered candidate resolution and sequential fallback.

Ordering
--------
1. Default order: every registered adapter by ascending priority (stable).
2. A forced provider collapses the candidates to that single adapter.
3. Otherwise a category preference list puts the named adapters first, in
   listed order, followed by the remaining adapters in default order.

Fallback
--------
``send`` walks the candidates one at a time and returns the first success.
A :class:`ValidationError` is re-raised at once; any other failure is logged
and the next candidate is tried.  Exhaustion raises
:class:`AggregateProviderFailure` carrying the last error.

``stream`` applies the same rule, but only while the current candidate has
not yet emitted a chunk.  After the first chunk the output already relayed
stands: a later failure raises :class:`StreamInterruptedError` and no other
provider is tried.

There is no latency budget across the chain: total latency is the sum of all
attempted candidates.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing

from chatcore.config.models import RoutingConfig
from chatcore.core.telemetry import trace_span
from chatcore.models.domain import LLMRequest, LLMResponse, TaskCategory
from chatcore.providers.base import BaseProviderAdapter, StreamItem
from chatcore.services.exceptions import (
    AggregateProviderFailure,
    ProviderError,
    StreamInterruptedError,
    is_retryable,
)

logger = logging.getLogger(__name__)


class ProviderRouter:
    """Routes requests across an immutable set of provider adapters.

    Usage::

        router = ProviderRouter(adapters, config.routing)
        response = await router.send(request)

        async for item in router.stream(request):
            ...  # str chunks, then one LLMResponse
    """

    def __init__(
        self,
        adapters: Sequence[BaseProviderAdapter],
        routing: RoutingConfig,
    ) -> None:
        ids = [a.provider_id for a in adapters]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate provider ids: {ids}")
        if not adapters:
            raise ValueError("At least one provider adapter is required")
        if routing.forced_provider and routing.forced_provider not in ids:
            raise ValueError(
                f"Forced provider '{routing.forced_provider}' is not registered. Available: {ids}"
            )

        # sorted() is stable: equal priorities keep registration order
        self._default_order: tuple[BaseProviderAdapter, ...] = tuple(
            sorted(adapters, key=lambda a: a.priority)
        )
        self._by_id = {a.provider_id: a for a in self._default_order}
        self._routing = routing

    @property
    def provider_ids(self) -> list[str]:
        """Registered provider ids in default (priority) order."""
        return [a.provider_id for a in self._default_order]

    def resolve_order(self, category: TaskCategory | None) -> list[BaseProviderAdapter]:
        """Return the ordered candidate list for *category*."""
        forced = self._routing.forced_provider
        if forced:
            return [self._by_id[forced]]

        preferred_ids = self._routing.preferences.get(category) if category else None
        if not preferred_ids:
            return list(self._default_order)

        preferred = [self._by_id[pid] for pid in preferred_ids if pid in self._by_id]
        remaining = [a for a in self._default_order if a.provider_id not in preferred_ids]
        return preferred + remaining

    # ------------------------------------------------------------------
    # Non-streaming
    # ------------------------------------------------------------------

    @trace_span("router.send")
    async def send(self, request: LLMRequest) -> LLMResponse:
        candidates = self.resolve_order(request.task_type)
        last_error: Exception | None = None
        attempted: list[str] = []

        for adapter in candidates:
            attempted.append(adapter.provider_id)
            logger.info(
                "Attempting request with %s (priority: %s)",
                adapter.provider_id,
                adapter.priority,
            )
            try:
                response = await adapter.send(request)
            except Exception as exc:
                if not is_retryable(exc):
                    logger.warning("%s rejected the request: %s", adapter.provider_id, exc)
                    raise
                logger.warning("%s failed: %s", adapter.provider_id, exc)
                last_error = exc
                continue

            logger.info("Success with %s", adapter.provider_id)
            return response

        raise AggregateProviderFailure(last_error, attempted)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(self, request: LLMRequest) -> AsyncIterator[StreamItem]:
        """Yield chunks from the first candidate that starts streaming.

        Exactly one :class:`LLMResponse` is yielded last on success.
        """
        candidates = self.resolve_order(request.task_type)
        last_error: Exception | None = None
        attempted: list[str] = []

        for adapter in candidates:
            attempted.append(adapter.provider_id)
            logger.info(
                "Attempting streaming with %s (priority: %s)",
                adapter.provider_id,
                adapter.priority,
            )
            started = False
            summary: LLMResponse | None = None
            try:
                async with aclosing(adapter.stream(request)) as items:
                    async for item in items:
                        if isinstance(item, LLMResponse):
                            summary = item
                            break
                        started = True
                        yield item
                if summary is None:
                    raise ProviderError(adapter.provider_id, "stream ended without a summary")
            except Exception as exc:
                if started:
                    logger.error("%s failed mid-stream: %s", adapter.provider_id, exc)
                    raise StreamInterruptedError(adapter.provider_id, exc) from exc
                if not is_retryable(exc):
                    logger.warning("%s rejected the request: %s", adapter.provider_id, exc)
                    raise
                logger.warning("%s streaming failed: %s", adapter.provider_id, exc)
                last_error = exc
                continue

            logger.info("Streaming success with %s", adapter.provider_id)
            yield summary
            return

        raise AggregateProviderFailure(last_error, attempted)
