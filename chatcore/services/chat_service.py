"""Chat service — composes moderation, classification, routing and enrichment.

One inbound chat message flows through:

1. :class:`ModerationGate` — a blocking verdict raises
   :class:`ContentBlockedError` before any provider is called.
2. :class:`TaskClassifier` — unless the caller supplied a task type.
3. Retrieval context — sources rendered into the system prompt.
4. :class:`ConsensusAggregator` (heightened validation on a consensus
   category) or :class:`ProviderRouter`.
5. Citation enrichment for medical answers (non-streaming only).
6. Usage recorded in the background.

Streaming is split in two so the transport can reject a blocked message with
a plain error response before it commits to an event stream::

    prepared = await service.prepare(chat)      # may raise ContentBlockedError
    async for event in service.stream(prepared):
        yield event.to_sse()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from chatcore.config.models import RetrievalConfig, RoutingConfig
from chatcore.core.background import BackgroundTasks
from chatcore.core.classifier import TaskClassifier
from chatcore.core.consensus import ConsensusAggregator
from chatcore.core.moderation import ModerationGate
from chatcore.core.router import ProviderRouter
from chatcore.core.telemetry import trace_span
from chatcore.models.domain import (
    LLMRequest,
    LLMResponse,
    Message,
    ResponseMetadata,
    Role,
    Source,
    TaskCategory,
    ValidationMethod,
)
from chatcore.providers.base import BaseContextProvider, ContextScope, StreamItem
from chatcore.providers.context.pubmed import format_citation_block, needs_citations
from chatcore.services.events import StreamEvent, StreamingRelay
from chatcore.services.exceptions import ContentBlockedError
from chatcore.services.prompts import system_prompt, temperature_for
from chatcore.storage.records import BaseRecordStore

logger = logging.getLogger(__name__)

MAX_TOKENS = 4096


@dataclass(frozen=True)
class ChatInput:
    """One inbound chat message with its caller context."""

    message: str
    user_id: str
    history: tuple[Message, ...] = ()
    task_type: TaskCategory | None = None
    heightened_validation: bool = False
    project_id: str | None = None
    message_id: str | None = None


@dataclass(frozen=True)
class PreparedChat:
    """A moderated, classified and context-enriched request, ready to run."""

    chat: ChatInput
    request: LLMRequest
    sources: tuple[Source, ...]
    use_consensus: bool


class ChatService:
    """Entry point for answering chat messages."""

    def __init__(
        self,
        router: ProviderRouter,
        consensus: ConsensusAggregator,
        moderation: ModerationGate,
        store: BaseRecordStore,
        routing: RoutingConfig,
        *,
        retriever: BaseContextProvider | None = None,
        retrieval_config: RetrievalConfig | None = None,
        citations: BaseContextProvider | None = None,
        classifier: TaskClassifier | None = None,
        background: BackgroundTasks | None = None,
    ) -> None:
        self.router = router
        self.consensus = consensus
        self.moderation = moderation
        self.store = store
        self.routing = routing
        self.retriever = retriever
        self.retrieval_config = retrieval_config
        self.citations = citations
        self.classifier = classifier or TaskClassifier()
        self.background = background or BackgroundTasks()
        self.relay = StreamingRelay()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def answer(self, chat: ChatInput) -> LLMResponse:
        """Moderate, route and enrich *chat*, returning the final response."""
        return await self.complete(await self.prepare(chat))

    @trace_span("chat.prepare")
    async def prepare(self, chat: ChatInput, *, streaming: bool = False) -> PreparedChat:
        verdict = await self.moderation.check(chat.message, chat.user_id, chat.message_id)
        if verdict.blocked:
            raise ContentBlockedError(verdict)

        category = chat.task_type or self.classifier.classify(chat.message)
        logger.info("Task type: %s", category.value)

        sources = tuple(await self._retrieve(chat))
        messages = (
            Message(role=Role.SYSTEM, content=system_prompt(category, sources)),
            *chat.history,
            Message(role=Role.USER, content=chat.message),
        )
        request = LLMRequest(
            messages=messages,
            task_type=category,
            max_tokens=MAX_TOKENS,
            temperature=temperature_for(category),
            streaming=streaming,
        )
        use_consensus = (
            chat.heightened_validation and category in self.routing.consensus_categories
        )
        return PreparedChat(chat, request, sources, use_consensus)

    @trace_span("chat.complete")
    async def complete(self, prepared: PreparedChat) -> LLMResponse:
        if prepared.use_consensus:
            response = await self.consensus.consensus(
                prepared.request, self.routing.consensus_min_providers
            )
        else:
            response = await self.router.send(prepared.request)

        content = response.content
        sources = list(prepared.sources)
        if prepared.request.category == TaskCategory.MEDICAL:
            citation_text, citation_sources = await self._cite(prepared.chat)
            content += citation_text
            sources.extend(citation_sources)

        metadata = response.metadata.model_copy(
            update={
                "sources": tuple(sources),
                "validation_method": response.metadata.validation_method
                or ValidationMethod.SINGLE,
            }
        )
        self._record_usage(response, prepared.chat.user_id)
        return response.model_copy(update={"content": content, "metadata": metadata})

    def stream(self, prepared: PreparedChat) -> AsyncIterator[StreamEvent]:
        """Relay the answer for *prepared* as stream events.

        Exactly one terminal event (``done`` or ``error``) ends the stream.
        """
        if prepared.use_consensus:
            items = self._consensus_items(prepared.request)
        else:
            items = self.router.stream(prepared.request)
        return self.relay.relay(self._recording(items, prepared.chat.user_id), prepared.sources)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _retrieve(self, chat: ChatInput) -> list[Source]:
        if self.retriever is None:
            return []
        cfg = self.retrieval_config
        scope = ContextScope(user_id=chat.user_id, project_id=chat.project_id)
        try:
            return await self.retriever.retrieve(
                chat.message,
                scope,
                limit=cfg.limit if cfg else 5,
                threshold=cfg.threshold if cfg else 0.7,
            )
        except Exception:
            logger.exception("Retrieval context unavailable, answering without it")
            return []

    async def _cite(self, chat: ChatInput) -> tuple[str, list[Source]]:
        if self.citations is None or not needs_citations(chat.message):
            return "", []
        try:
            found = await self.citations.retrieve(
                chat.message, ContextScope(user_id=chat.user_id)
            )
        except Exception:
            # The answer is already in hand; it goes out with the no-sources note
            logger.exception("Citation lookup failed")
            found = []
        return format_citation_block(found), found

    async def _consensus_items(self, request: LLMRequest) -> AsyncIterator[StreamItem]:
        # Consensus answers arrive whole: one chunk, then the summary
        response = await self.consensus.consensus(request, self.routing.consensus_min_providers)
        if response.content:
            yield response.content
        yield response

    async def _recording(
        self, items: AsyncIterator[StreamItem], user_id: str
    ) -> AsyncIterator[StreamItem]:
        async for item in items:
            if isinstance(item, LLMResponse):
                self._record_usage(item, user_id)
            yield item

    def _record_usage(self, response: LLMResponse, user_id: str) -> None:
        self.background.spawn(
            self.store.record_usage(
                response.token_count, response.model_id, response.provider_id, user_id
            ),
            name=f"usage:{user_id}",
        )


def history_from(messages: Sequence[Message]) -> tuple[Message, ...]:
    """Conversation history as supplied by the caller, system turns dropped."""
    return tuple(m for m in messages if m.role != Role.SYSTEM)
