"""Unit tests for the SSE event protocol and StreamingRelay."""

import json

import pytest

from chatcore.core.router import ProviderRouter
from chatcore.models.domain import LLMResponse, Source, SourceKind
from chatcore.services.events import EventType, StreamEvent, StreamingRelay
from chatcore.services.exceptions import (
    PROVIDERS_UNAVAILABLE_MESSAGE,
    STREAM_FAILED_MESSAGE,
    ProviderError,
)


def _payload(event):
    line = event.to_sse()
    assert line.startswith("data: ")
    assert line.endswith("\n\n")
    return json.loads(line[len("data: "):])


async def _relay(source, sources=()):
    return [event async for event in StreamingRelay().relay(source, sources)]


def test_chunk_event_wire_format():
    assert StreamEvent.chunk("hi").to_sse() == 'data: {"chunk": "hi"}\n\n'


def test_done_event_payload():
    summary = LLMResponse(content="abc", model_id="m", provider_id="p", token_count=7)
    source = Source(kind=SourceKind.RETRIEVAL, title="Doc", snippet="text", relevance_score=0.9)

    payload = _payload(StreamEvent.done(summary, [source]))

    assert payload["done"] is True
    assert payload["model"] == "m"
    assert payload["provider"] == "p"
    assert payload["tokenCount"] == 7
    assert payload["sources"][0]["title"] == "Doc"
    assert payload["sources"][0]["relevanceScore"] == 0.9


@pytest.mark.asyncio
async def test_relay_chunks_then_done(fake_adapter, routing, make_request):
    router = ProviderRouter([fake_adapter("a", chunks=["Hel", "lo", "!"])], routing)

    events = await _relay(router.stream(make_request()))

    assert [e.type for e in events] == [
        EventType.CHUNK,
        EventType.CHUNK,
        EventType.CHUNK,
        EventType.DONE,
    ]
    text = "".join(_payload(e)["chunk"] for e in events[:-1])
    assert text == "Hello!"
    assert _payload(events[-1])["provider"] == "a"


@pytest.mark.asyncio
async def test_relay_mid_stream_failure_ends_with_one_error(fake_adapter, routing, make_request):
    adapter = fake_adapter(
        "a", chunks=["one", "two", "three"], error=ProviderError("a", "reset"), fail_after=1
    )
    router = ProviderRouter([adapter], routing)

    events = await _relay(router.stream(make_request()))

    assert [e.type for e in events] == [EventType.CHUNK, EventType.ERROR]
    # provider detail stays in the log
    assert _payload(events[-1]) == {"error": STREAM_FAILED_MESSAGE}


@pytest.mark.asyncio
async def test_relay_total_failure_ends_with_one_error(fake_adapter, routing, make_request):
    router = ProviderRouter(
        [fake_adapter("a", error=ProviderError("a", "down"))],
        routing,
    )

    events = await _relay(router.stream(make_request()))

    assert len(events) == 1
    assert events[0].type == EventType.ERROR
    assert _payload(events[0]) == {"error": PROVIDERS_UNAVAILABLE_MESSAGE}


@pytest.mark.asyncio
async def test_relay_source_without_summary_ends_with_error():
    async def chunks_only():
        yield "partial"

    events = await _relay(chunks_only())

    assert [e.type for e in events] == [EventType.CHUNK, EventType.ERROR]


@pytest.mark.asyncio
async def test_relay_has_exactly_one_terminal_event_on_every_path(
    fake_adapter, routing, make_request
):
    scenarios = [
        fake_adapter("ok"),
        fake_adapter("early", error=ProviderError("early", "x")),
        fake_adapter("late", error=ProviderError("late", "x"), fail_after=2),
        fake_adapter("empty", chunks=[]),
    ]
    for adapter in scenarios:
        router = ProviderRouter([adapter], routing)
        events = await _relay(router.stream(make_request()))
        terminals = [e for e in events if e.terminal]
        assert len(terminals) == 1, adapter.provider_id
        assert events[-1].terminal
