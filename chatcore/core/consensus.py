"""Consensus aggregator — concurrent cross-check over several providers.

The first ``min_providers`` candidates of the router's ordering are queried
concurrently.  Every call is wrapped so that it settles into a tagged
outcome instead of raising, which lets :func:`asyncio.gather` act as a join
over the whole set: a slow provider is always waited for, a failing one never
cancels its siblings.

There is no voting.  The representative answer is the first success in
priority order; the number of successes only drives the confidence score.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from chatcore.core.router import ProviderRouter
from chatcore.core.telemetry import trace_span
from chatcore.models.domain import LLMRequest, LLMResponse, ValidationMethod
from chatcore.providers.base import BaseProviderAdapter
from chatcore.services.exceptions import AggregateProviderFailure

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.95
LOW_CONFIDENCE = 0.7


@dataclass(frozen=True)
class Outcome:
    """Settled result of one provider call."""

    provider_id: str
    response: LLMResponse | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.response is not None


class ConsensusAggregator:
    """Queries several providers at once and reports how many agreed to answer."""

    def __init__(self, router: ProviderRouter) -> None:
        self.router = router

    @trace_span("consensus")
    async def consensus(self, request: LLMRequest, min_providers: int = 2) -> LLMResponse:
        """Return the highest-priority successful answer with consensus metadata.

        Raises:
            ValueError: If *min_providers* is less than one.
            AggregateProviderFailure: If no queried provider succeeded.
        """
        if min_providers < 1:
            raise ValueError(f"min_providers must be at least 1, got {min_providers}")

        candidates = self.router.resolve_order(request.task_type)[:min_providers]
        logger.info(
            "Consensus over %s (requested %d)",
            [a.provider_id for a in candidates],
            min_providers,
        )

        outcomes: list[Outcome] = await asyncio.gather(
            *(self._settle(adapter, request) for adapter in candidates)
        )

        successes = [o for o in outcomes if o.ok]
        if not successes:
            raise AggregateProviderFailure(
                outcomes[-1].error if outcomes else None,
                [o.provider_id for o in outcomes],
            )

        confidence = HIGH_CONFIDENCE if len(successes) >= min_providers else LOW_CONFIDENCE
        representative = successes[0].response
        logger.info(
            "Consensus: %d/%d succeeded, using %s (confidence %.2f)",
            len(successes),
            len(outcomes),
            representative.provider_id,
            confidence,
        )
        metadata = representative.metadata.model_copy(
            update={
                "confidence_score": confidence,
                "validation_method": ValidationMethod.CONSENSUS,
            }
        )
        return representative.model_copy(update={"metadata": metadata})

    @staticmethod
    async def _settle(adapter: BaseProviderAdapter, request: LLMRequest) -> Outcome:
        try:
            response = await adapter.send(request)
        except Exception as exc:
            logger.warning("Consensus: %s failed: %s", adapter.provider_id, exc)
            return Outcome(adapter.provider_id, error=exc)
        return Outcome(adapter.provider_id, response=response)
