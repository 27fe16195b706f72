"""Provider adapter backed by pydantic-ai.

One adapter instance wraps one backend model family (Claude, Gemini,
Together …).  The model used for a request is picked from the provider's
per-category model map.  Backend errors are translated into the core's
error taxonomy:

- HTTP 400 / 422 from the backend, or a malformed request → ``ValidationError``
- anything else → ``ProviderError`` (the router may fall back)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence

from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from chatcore.config.models import ProviderConfig
from chatcore.models.domain import LLMRequest, LLMResponse, Message, Role
from chatcore.providers.adapters.model_registry import ModelRegistry
from chatcore.providers.base import BaseProviderAdapter, StreamItem
from chatcore.services.exceptions import ProviderError, ValidationError

logger = logging.getLogger(__name__)

NON_RETRYABLE_STATUS = frozenset({400, 422})


def to_model_messages(messages: Sequence[Message]) -> tuple[list[ModelMessage], str]:
    """Split a conversation into pydantic-ai history and the final user prompt.

    Raises:
        ValueError: If the conversation does not end with a user message.
    """
    if not messages or messages[-1].role != Role.USER:
        raise ValueError("conversation must end with a user message")

    history: list[ModelMessage] = []
    for message in messages[:-1]:
        match message.role:
            case Role.SYSTEM:
                history.append(ModelRequest(parts=[SystemPromptPart(content=message.content)]))
            case Role.USER:
                history.append(ModelRequest(parts=[UserPromptPart(content=message.content)]))
            case Role.ASSISTANT:
                history.append(ModelResponse(parts=[TextPart(content=message.content)]))
    return history, messages[-1].content


class PydanticAIAdapter(BaseProviderAdapter):
    """Uniform send / stream over a pydantic-ai model family."""

    def __init__(self, config: ProviderConfig, registry: ModelRegistry) -> None:
        self.config = config
        self.provider_id = config.provider_id
        self.priority = config.priority
        self.registry = registry
        # Agent is stateless, safe to reuse across requests
        self._agents: dict[str, Agent[None, str]] = {}

    def __repr__(self) -> str:
        return f"PydanticAIAdapter({self.provider_id!r}, priority={self.priority})"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send(self, request: LLMRequest) -> LLMResponse:
        model_name, agent, history, prompt = self._prepare(request)
        try:
            result = await agent.run(
                prompt,
                message_history=history or None,
                model_settings=self._settings(request),
            )
        except Exception as exc:
            raise self._translate(exc) from exc

        return LLMResponse(
            content=result.output,
            model_id=model_name,
            provider_id=self.provider_id,
            token_count=result.usage().total_tokens or 0,
            finish_reason=_finish_reason(result),
        )

    async def stream(self, request: LLMRequest) -> AsyncIterator[StreamItem]:
        model_name, agent, history, prompt = self._prepare(request)
        chunks: list[str] = []
        try:
            async with agent.run_stream(
                prompt,
                message_history=history or None,
                model_settings=self._settings(request),
            ) as run:
                async for delta in run.stream_text(delta=True, debounce_by=None):
                    if not delta:
                        continue
                    chunks.append(delta)
                    yield delta
                usage = run.usage()
        except Exception as exc:
            raise self._translate(exc) from exc

        yield LLMResponse(
            content="".join(chunks),
            model_id=model_name,
            provider_id=self.provider_id,
            token_count=usage.total_tokens or 0,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _prepare(
        self, request: LLMRequest
    ) -> tuple[str, Agent[None, str], list[ModelMessage], str]:
        try:
            history, prompt = to_model_messages(request.messages)
        except ValueError as exc:
            raise ValidationError(self.provider_id, str(exc)) from exc

        model_name = self.config.model_for(request.category)
        return model_name, self._get_agent(model_name), history, prompt

    def _get_agent(self, model_name: str) -> Agent[None, str]:
        if model_name not in self._agents:
            model: Model = self.registry.get_model(model_name)
            self._agents[model_name] = Agent(model, output_type=str)
        return self._agents[model_name]

    @staticmethod
    def _settings(request: LLMRequest) -> ModelSettings:
        return ModelSettings(max_tokens=request.max_tokens, temperature=request.temperature)

    def _translate(self, exc: Exception) -> Exception:
        if isinstance(exc, (ValidationError, ProviderError)):
            return exc
        if isinstance(exc, ModelHTTPError) and exc.status_code in NON_RETRYABLE_STATUS:
            return ValidationError(self.provider_id, f"{exc.status_code} {exc.body}")
        logger.error("%s API error: %s", self.provider_id, exc)
        return ProviderError(self.provider_id, str(exc) or type(exc).__name__)


def _finish_reason(result: object) -> str | None:
    response = getattr(result, "response", None)
    return getattr(response, "finish_reason", None)
