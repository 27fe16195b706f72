"""SSE (Server-Sent Events) protocol models and the streaming relay.

Defines the event protocol used to stream an answer to the client.  One
JSON object per ``data:`` line:

.. list-table::
   :header-rows: 1

   * - type
     - payload
   * - ``chunk``
     - ``{"chunk": "partial text"}``
   * - ``done``
     - ``{"done": true, "model": ..., "provider": ..., "tokenCount": ...,
       "sources": [...]}``
   * - ``error``
     - ``{"error": "message"}``

A stream is zero or more ``chunk`` events in emission order followed by
exactly one terminal event (``done`` or ``error``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from chatcore.models.domain import LLMResponse, Source
from chatcore.providers.base import StreamItem
from chatcore.services.exceptions import (
    PROVIDERS_UNAVAILABLE_MESSAGE,
    STREAM_FAILED_MESSAGE,
    AggregateProviderFailure,
)

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """SSE event types."""

    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StreamEvent:
    """A single SSE event."""

    type: EventType
    data: dict[str, Any]

    @property
    def terminal(self) -> bool:
        return self.type is not EventType.CHUNK

    @classmethod
    def chunk(cls, text: str) -> StreamEvent:
        return cls(EventType.CHUNK, {"chunk": text})

    @classmethod
    def done(cls, summary: LLMResponse, sources: Sequence[Source] = ()) -> StreamEvent:
        return cls(
            EventType.DONE,
            {
                "done": True,
                "model": summary.model_id,
                "provider": summary.provider_id,
                "tokenCount": summary.token_count,
                "sources": [s.model_dump(mode="json", by_alias=True) for s in sources],
            },
        )

    @classmethod
    def error(cls, message: str) -> StreamEvent:
        return cls(EventType.ERROR, {"error": message})

    def to_sse(self) -> str:
        r"""Serialise to SSE wire format (``data: ...\n\n``)."""
        return f"data: {json.dumps(self.data, default=str)}\n\n"


class StreamingRelay:
    """Turns a provider chunk iterator into client-facing stream events.

    The relay is a lazy async generator: nothing is buffered beyond the chunk
    being forwarded, and the transport pulls at its own pace.

    Usage in the API layer::

        async for event in relay.relay(router.stream(request), sources):
            yield event.to_sse()
    """

    async def relay(
        self,
        source: AsyncIterator[StreamItem],
        sources: Sequence[Source] = (),
    ) -> AsyncIterator[StreamEvent]:
        summary: LLMResponse | None = None
        try:
            async for item in source:
                if isinstance(item, LLMResponse):
                    summary = item
                    continue
                yield StreamEvent.chunk(item)
        except AggregateProviderFailure as exc:
            logger.error("Stream relay failed: %s (attempted %s)", exc, exc.attempted)
            yield StreamEvent.error(PROVIDERS_UNAVAILABLE_MESSAGE)
            return
        except Exception as exc:
            logger.error("Stream relay failed: %s", exc)
            yield StreamEvent.error(STREAM_FAILED_MESSAGE)
            return

        if summary is None:
            yield StreamEvent.error("Stream ended without a final response")
            return
        yield StreamEvent.done(summary, sources)
