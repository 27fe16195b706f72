"""Service container — builds every component once at start-up.

Reads the immutable :class:`AppConfig`, creates provider adapters and
collaborators through the :class:`ProviderFactory`, and wires them into a
:class:`ChatService`.  The resulting :class:`ChatServices` is stored on
``app.state`` and shared, read-only, by all requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from chatcore.config.models import AppConfig
from chatcore.core.background import BackgroundTasks
from chatcore.core.consensus import ConsensusAggregator
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.moderation import ModerationGate
from chatcore.core.router import ProviderRouter
from chatcore.providers.adapters.model_registry import ModelRegistry
from chatcore.providers.adapters.pydantic_ai_adapter import PydanticAIAdapter
from chatcore.providers.base import (
    BaseAlertNotifier,
    BaseContextProvider,
    BaseProviderAdapter,
    BaseSafetyClassifier,
)
from chatcore.providers.factory import ProviderFactory
from chatcore.services.chat_service import ChatService
from chatcore.storage.records import BaseRecordStore

logger = logging.getLogger(__name__)


@dataclass
class ChatServices:
    """Every long-lived component, built from one configuration."""

    config: AppConfig
    router: ProviderRouter
    consensus: ConsensusAggregator
    moderation: ModerationGate
    chat: ChatService
    store: BaseRecordStore
    background: BackgroundTasks

    @property
    def provider_ids(self) -> list[str]:
        return self.router.provider_ids

    async def close(self) -> None:
        """Let background work finish, then release the record store."""
        await self.background.drain()
        await self.store.close()


def build_services(config: AppConfig, http_pool: HttpClientPool) -> ChatServices:
    """Create all components for *config*.

    Raises:
        ValueError: On configuration errors (unknown provider kind, unknown
            forced provider, missing collaborator settings).
    """
    # Import concrete providers so @register_provider decorators fire
    _ensure_providers_imported()

    adapters = _build_adapters(config, http_pool)
    router = ProviderRouter(adapters, config.routing)
    consensus = ConsensusAggregator(router)

    store = ProviderFactory.create(
        BaseRecordStore, config.storage.provider, config.storage, None, http_pool
    )
    notifier = ProviderFactory.create(
        BaseAlertNotifier, config.alerts.provider, config.alerts, None, http_pool
    )

    classifier: BaseSafetyClassifier | None = None
    if config.moderation.safety_classifier:
        safety = config.moderation.safety_classifier
        cloud_config = config.azure_config if safety.provider == "azure" else None
        classifier = ProviderFactory.create(
            BaseSafetyClassifier, safety.provider, safety, cloud_config, http_pool
        )

    retriever: BaseContextProvider | None = None
    if config.context.retrieval:
        retrieval = config.context.retrieval
        retriever = ProviderFactory.create(
            BaseContextProvider, retrieval.provider, retrieval, None, http_pool
        )

    citations: BaseContextProvider | None = None
    if config.context.citations:
        citation = config.context.citations
        citations = ProviderFactory.create(
            BaseContextProvider, citation.provider, citation, None, http_pool
        )

    background = BackgroundTasks()
    moderation = ModerationGate(config.moderation, classifier, store, notifier, background)
    chat = ChatService(
        router,
        consensus,
        moderation,
        store,
        config.routing,
        retriever=retriever,
        retrieval_config=config.context.retrieval,
        citations=citations,
        background=background,
    )

    logger.info(
        "Services ready: providers=%s safety=%s retrieval=%s citations=%s",
        router.provider_ids,
        type(classifier).__name__ if classifier else None,
        type(retriever).__name__ if retriever else None,
        type(citations).__name__ if citations else None,
    )
    return ChatServices(
        config=config,
        router=router,
        consensus=consensus,
        moderation=moderation,
        chat=chat,
        store=store,
        background=background,
    )


def _build_adapters(config: AppConfig, http_pool: HttpClientPool) -> list[BaseProviderAdapter]:
    return [
        PydanticAIAdapter(provider, ModelRegistry(provider, http_pool, config.azure_config))
        for provider in config.providers
    ]


def _ensure_providers_imported() -> None:
    """Import concrete providers to trigger ``@register_provider``."""
    import chatcore.providers.alerts.notifiers  # noqa: F401
    import chatcore.providers.context.http_retrieval  # noqa: F401
    import chatcore.providers.context.pubmed  # noqa: F401
    import chatcore.providers.safety.azure_content_safety  # noqa: F401
    import chatcore.providers.safety.llama_guard  # noqa: F401
    import chatcore.storage.records  # noqa: F401
    import chatcore.storage.redis_records  # noqa: F401
