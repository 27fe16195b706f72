"""Unit tests for PydanticAIAdapter using pydantic-ai's FunctionModel."""

from unittest.mock import MagicMock

import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import (
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models.function import FunctionModel

from chatcore.config.models import ProviderConfig
from chatcore.models.domain import LLMRequest, LLMResponse, Message, Role, TaskCategory
from chatcore.providers.adapters.model_registry import ModelRegistry
from chatcore.providers.adapters.pydantic_ai_adapter import PydanticAIAdapter, to_model_messages
from chatcore.services.exceptions import ProviderError, ValidationError


@pytest.fixture
def provider_config():
    return ProviderConfig.model_validate(
        {
            "id": "claude",
            "kind": "anthropic",
            "priority": 1,
            "defaultModel": "claude-default",
            "models": {"coding": "claude-coder"},
        }
    )


def _adapter(provider_config, model):
    registry = MagicMock(spec=ModelRegistry)
    registry.get_model.return_value = model
    return PydanticAIAdapter(provider_config, registry), registry


def _request(*messages, task_type=TaskCategory.GENERAL):
    return LLMRequest(messages=messages, task_type=task_type)


def test_to_model_messages_splits_history():
    history, prompt = to_model_messages(
        [
            Message(role=Role.SYSTEM, content="be brief"),
            Message(role=Role.USER, content="hi"),
            Message(role=Role.ASSISTANT, content="hello"),
            Message(role=Role.USER, content="how are you?"),
        ]
    )

    assert prompt == "how are you?"
    assert isinstance(history[0], ModelRequest)
    assert isinstance(history[0].parts[0], SystemPromptPart)
    assert isinstance(history[1].parts[0], UserPromptPart)
    assert isinstance(history[2], ModelResponse)
    assert isinstance(history[2].parts[0], TextPart)


def test_to_model_messages_requires_trailing_user_message():
    with pytest.raises(ValueError):
        to_model_messages([Message(role=Role.ASSISTANT, content="hello")])


@pytest.mark.asyncio
async def test_send_returns_response(provider_config):
    seen = {}

    def respond(messages, info):
        seen["messages"] = messages
        seen["settings"] = info.model_settings
        return ModelResponse(parts=[TextPart(content="Paris")])

    adapter, registry = _adapter(provider_config, FunctionModel(respond))

    response = await adapter.send(
        _request(
            Message(role=Role.SYSTEM, content="You are helpful."),
            Message(role=Role.USER, content="Capital of France?"),
        )
    )

    assert response.content == "Paris"
    assert response.provider_id == "claude"
    assert response.model_id == "claude-default"
    assert response.token_count >= 0
    registry.get_model.assert_called_once_with("claude-default")

    first = seen["messages"][0]
    assert any(isinstance(p, SystemPromptPart) for p in first.parts)
    assert seen["settings"]["max_tokens"] == 4096


@pytest.mark.asyncio
async def test_send_uses_category_model(provider_config):
    adapter, registry = _adapter(
        provider_config, FunctionModel(lambda m, i: ModelResponse(parts=[TextPart(content="ok")]))
    )

    response = await adapter.send(
        _request(Message(role=Role.USER, content="fix my code"), task_type=TaskCategory.CODING)
    )

    assert response.model_id == "claude-coder"
    registry.get_model.assert_called_once_with("claude-coder")


@pytest.mark.asyncio
async def test_stream_yields_deltas_then_summary(provider_config):
    async def stream_words(messages, info):
        for word in ["Hello", ", ", "world"]:
            yield word

    adapter, _ = _adapter(provider_config, FunctionModel(stream_function=stream_words))

    items = [item async for item in adapter.stream(_request(Message(role=Role.USER, content="hi")))]

    *chunks, summary = items
    assert "".join(chunks) == "Hello, world"
    assert all(isinstance(c, str) for c in chunks)
    assert isinstance(summary, LLMResponse)
    assert summary.content == "Hello, world"
    assert summary.provider_id == "claude"


@pytest.mark.asyncio
async def test_bad_request_status_maps_to_validation_error(provider_config):
    def reject(messages, info):
        raise ModelHTTPError(status_code=400, model_name="claude-default", body={"error": "bad"})

    adapter, _ = _adapter(provider_config, FunctionModel(reject))

    with pytest.raises(ValidationError):
        await adapter.send(_request(Message(role=Role.USER, content="hi")))


@pytest.mark.asyncio
async def test_server_error_maps_to_provider_error(provider_config):
    def overloaded(messages, info):
        raise ModelHTTPError(status_code=529, model_name="claude-default", body="overloaded")

    adapter, _ = _adapter(provider_config, FunctionModel(overloaded))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.send(_request(Message(role=Role.USER, content="hi")))

    assert exc_info.value.provider_id == "claude"


@pytest.mark.asyncio
async def test_stream_failure_before_first_delta_is_provider_error(provider_config):
    async def broken(messages, info):
        raise ConnectionError("reset by peer")
        yield

    adapter, _ = _adapter(provider_config, FunctionModel(stream_function=broken))

    with pytest.raises(ProviderError):
        async for _ in adapter.stream(_request(Message(role=Role.USER, content="hi"))):
            pass


@pytest.mark.asyncio
async def test_malformed_conversation_is_validation_error(provider_config):
    adapter, registry = _adapter(provider_config, FunctionModel(lambda m, i: None))

    with pytest.raises(ValidationError):
        await adapter.send(_request(Message(role=Role.ASSISTANT, content="dangling")))

    registry.get_model.assert_not_called()
