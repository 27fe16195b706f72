"""Semantic document retrieval over a JSON HTTP search endpoint.

The endpoint owns embeddings and ranking; this provider only forwards the
query with its scope and maps the matches onto :class:`Source` values.

Expected response shape::

    {"matches": [{"title": "...", "content": "...", "similarity": 0.83,
                  "metadata": {"source_url": "https://..."}}]}
"""

from __future__ import annotations

import logging

from chatcore.config.models import RetrievalConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.resilience import safe_execute
from chatcore.models.domain import Source, SourceKind
from chatcore.providers.base import BaseContextProvider, ContextScope
from chatcore.providers.factory import register_provider

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 200


@register_provider("context", "http")
class HttpRetrievalProvider(BaseContextProvider):
    """Retrieval-augmentation lookup against the knowledge-base search API."""

    def __init__(
        self,
        config: RetrievalConfig,
        cloud_config: None,
        http_pool: HttpClientPool,
    ) -> None:
        self.config = config
        headers = {"Authorization": f"Bearer {config.api_key}"} if config.api_key else None
        self.http_client = http_pool.get("retrieval", timeout=15.0, headers=headers)

    async def retrieve(
        self,
        query: str,
        scope: ContextScope,
        limit: int = 5,
        threshold: float = 0.0,
    ) -> list[Source]:
        payload = {
            "query": query,
            "limit": limit,
            "threshold": threshold,
            "projectId": scope.project_id,
            "userId": scope.user_id,
        }
        try:
            data = await safe_execute(self._search, payload)
            sources = [self._to_source(match) for match in data.get("matches") or []]
        except Exception:
            logger.exception("Retrieval lookup failed")
            return []
        return sources[:limit]

    async def _search(self, payload: dict) -> dict:
        response = await self.http_client.post(self.config.endpoint, json=payload)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _to_source(match: dict) -> Source:
        content = match.get("content") or ""
        metadata = match.get("metadata") or {}
        return Source(
            kind=SourceKind.RETRIEVAL,
            title=match.get("title") or "Untitled",
            snippet=content[:SNIPPET_CHARS] + "...",
            relevance_score=match.get("similarity"),
            url=metadata.get("source_url"),
        )
