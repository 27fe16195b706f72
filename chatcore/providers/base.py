"""Abstract base classes for providers and collaborators.

- :class:`BaseProviderAdapter` wraps one backend model family.
- :class:`BaseSafetyClassifier` is the delegated safety check used by the
  moderation gate.
- :class:`BaseContextProvider` supplies supplementary sources (retrieval,
  citation enrichment).
- :class:`BaseAlertNotifier` delivers operator alerts.

Record stores live in :mod:`chatcore.storage.records`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass

from chatcore.models.domain import (
    LLMRequest,
    LLMResponse,
    ModerationVerdict,
    SafetyAssessment,
    Source,
)
from chatcore.providers.factory import provider_component

StreamItem = str | LLMResponse
"""An item of a provider stream: text deltas, then one final summary."""


class BaseProviderAdapter(ABC):
    """Uniform send / stream capability over one backend model family.

    ``stream`` yields zero or more text deltas followed by exactly one
    :class:`LLMResponse` summary whose ``content`` equals the concatenated
    deltas.  The iterator is finite and cannot be restarted.
    """

    provider_id: str
    priority: int

    @abstractmethod
    async def send(self, request: LLMRequest) -> LLMResponse:
        """Return a complete response for *request*."""
        ...

    @abstractmethod
    def stream(self, request: LLMRequest) -> AsyncIterator[StreamItem]:
        """Yield text deltas, then the final :class:`LLMResponse`."""
        ...


@provider_component("safety")
class BaseSafetyClassifier(ABC):
    """Classify raw user text as safe / unsafe with a category."""

    @abstractmethod
    async def assess(self, text: str) -> SafetyAssessment:
        """Run the external safety classification for *text*."""
        ...


@dataclass(frozen=True)
class ContextScope:
    """Which documents a context lookup may see."""

    user_id: str | None = None
    project_id: str | None = None


@provider_component("context")
class BaseContextProvider(ABC):
    """Supply supplementary sources for a query.  Pure query, may return ``[]``."""

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        scope: ContextScope,
        limit: int = 5,
        threshold: float = 0.0,
    ) -> list[Source]:
        """Return up to *limit* sources scoring at least *threshold*."""
        ...


@provider_component("alerts")
class BaseAlertNotifier(ABC):
    """Best-effort operator notification for moderation flags."""

    @abstractmethod
    async def notify(self, verdict: ModerationVerdict, content_preview: str) -> None:
        """Deliver an alert for *verdict*."""
        ...
