"""Pytest configuration and fixtures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatcore.config.models import ModerationConfig, RoutingConfig
from chatcore.core.background import BackgroundTasks
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.models.domain import LLMRequest, LLMResponse, Message, Role, TaskCategory
from chatcore.providers.base import BaseAlertNotifier, BaseProviderAdapter
from chatcore.storage.records import InMemoryRecordStore


class FakeAdapter(BaseProviderAdapter):
    """Scriptable provider adapter.

    - ``error`` with no ``fail_after``: fails before producing anything.
    - ``error`` with ``fail_after=n``: streams ``n`` chunks, then fails.
    """

    def __init__(
        self,
        provider_id,
        priority=100,
        *,
        chunks=("Hello", ", ", "world"),
        error=None,
        fail_after=None,
        tokens=12,
        delay=0.0,
    ):
        self.provider_id = provider_id
        self.priority = priority
        self.chunks = list(chunks)
        self.error = error
        self.fail_after = fail_after
        self.tokens = tokens
        self.delay = delay
        self.calls = 0
        self.requests = []

    def _summary(self):
        return LLMResponse(
            content="".join(self.chunks),
            model_id=f"{self.provider_id}-model",
            provider_id=self.provider_id,
            token_count=self.tokens,
        )

    async def send(self, request):
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self._summary()

    async def stream(self, request):
        self.calls += 1
        self.requests.append(request)
        if self.error is not None and self.fail_after is None:
            raise self.error
        for index, chunk in enumerate(self.chunks):
            if self.error is not None and index == self.fail_after:
                raise self.error
            yield chunk
        yield self._summary()


@pytest.fixture
def fake_adapter():
    """Factory for :class:`FakeAdapter` instances."""
    return FakeAdapter


@pytest.fixture
def make_request():
    """Factory for a single-turn :class:`LLMRequest`."""

    def _make(text="hello", task_type=TaskCategory.GENERAL, **kwargs):
        return LLMRequest(
            messages=(Message(role=Role.USER, content=text),),
            task_type=task_type,
            **kwargs,
        )

    return _make


@pytest.fixture
def routing():
    """Routing config without category preferences: plain priority order."""
    return RoutingConfig(preferences={})


@pytest.fixture
def moderation_config():
    return ModerationConfig()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def mock_notifier():
    """Mock alert notifier."""
    return AsyncMock(spec=BaseAlertNotifier)


@pytest.fixture
def background():
    return BackgroundTasks()


@pytest.fixture
def mock_http_pool():
    pool = MagicMock(spec=HttpClientPool)
    pool.get.return_value = AsyncMock()  # Mock httpx client
    pool.get_azure_transport.return_value = AsyncMock()  # Mock azure transport
    return pool
