"""PubMed citation enrichment via NCBI E-utilities.

Three calls per lookup: ``esearch`` for PMIDs, ``esummary`` for titles,
authors and dates, ``efetch`` (XML) for abstracts.  Every failure degrades to
an empty source list.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

import httpx

from chatcore.config.models import CitationConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.resilience import safe_execute
from chatcore.models.domain import Source, SourceKind
from chatcore.providers.base import BaseContextProvider, ContextScope
from chatcore.providers.factory import register_provider

logger = logging.getLogger(__name__)

MEDICAL_RESEARCH_TERMS = (
    "disease",
    "treatment",
    "therapy",
    "diagnosis",
    "syndrome",
    "symptom",
    "medication",
    "drug",
    "clinical",
    "patient",
    "medical",
    "health",
    "cancer",
    "diabetes",
    "infection",
    "virus",
    "bacteria",
    "study",
    "research",
    "trial",
)

DISCLAIMER = (
    "**Disclaimer:** This information is for educational purposes only and does "
    "not constitute medical advice. Please consult with a qualified healthcare "
    "provider for medical decisions."
)

NO_SOURCES_NOTE = (
    "**Note:** No reliable sources were found from PubMed for this query. The "
    "information provided is based on general knowledge and should be verified "
    "with a healthcare professional."
)


def needs_citations(query: str) -> bool:
    """Whether *query* is worth a literature lookup."""
    lowered = query.lower()
    return any(term in lowered for term in MEDICAL_RESEARCH_TERMS)


def format_citation_block(sources: list[Source]) -> str:
    """Render citation sources as a markdown block appended to an answer."""
    if not sources:
        return f"\n\n{NO_SOURCES_NOTE}"

    lines = ["", "", "**Medical Sources:**", ""]
    for index, source in enumerate(sources, start=1):
        lines.append(f"{index}. **{source.title}**")
        if source.authors:
            authors = ", ".join(source.authors[:3])
            suffix = " et al." if len(source.authors) > 3 else ""
            lines.append(f"   Authors: {authors}{suffix}")
        if source.publication_date:
            lines.append(f"   Published: {source.publication_date}")
        lines.append(f"   [PubMed Link]({source.url})")
        lines.append("")
    lines.append("")
    lines.append(DISCLAIMER)
    return "\n".join(lines) + "\n"


def parse_abstracts(xml_text: str) -> dict[str, str]:
    """Map PMID → plain-text abstract from an ``efetch`` XML payload."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        logger.warning("Unparseable PubMed efetch payload")
        return {}

    abstracts: dict[str, str] = {}
    for article in root.iter("PubmedArticle"):
        pmid = article.findtext("MedlineCitation/PMID")
        if not pmid:
            continue
        parts = [
            "".join(node.itertext()).strip()
            for node in article.iterfind("MedlineCitation/Article/Abstract/AbstractText")
        ]
        abstracts[pmid] = " ".join(p for p in parts if p)
    return abstracts


@register_provider("context", "pubmed")
class PubMedCitationProvider(BaseContextProvider):
    """Bibliographic citations from PubMed, ranked by search relevance."""

    def __init__(
        self,
        config: CitationConfig,
        cloud_config: None,
        http_pool: HttpClientPool,
    ) -> None:
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.http_client = http_pool.get("pubmed", timeout=20.0)

    async def retrieve(
        self,
        query: str,
        scope: ContextScope,
        limit: int = 5,
        threshold: float = 0.0,
    ) -> list[Source]:
        # Literature lookups are not scoped per user or project
        try:
            return await self._lookup(query, min(limit, self.config.max_results), threshold)
        except Exception:
            logger.exception("PubMed lookup failed")
            return []

    async def _lookup(self, query: str, limit: int, threshold: float) -> list[Source]:
        search = await safe_execute(
            self._get,
            "esearch.fcgi",
            {"db": "pubmed", "term": query, "retmax": limit, "retmode": "json", "sort": "relevance"},
        )
        pmids: list[str] = search.json()["esearchresult"].get("idlist") or []
        if not pmids:
            return []

        ids = ",".join(pmids)
        summary = await safe_execute(
            self._get, "esummary.fcgi", {"db": "pubmed", "id": ids, "retmode": "json"}
        )
        articles = summary.json()["result"]
        fetched = await safe_execute(
            self._get, "efetch.fcgi", {"db": "pubmed", "id": ids, "retmode": "xml"}
        )
        abstracts = parse_abstracts(fetched.text)

        sources: list[Source] = []
        for rank, pmid in enumerate(pmids):
            article = articles.get(pmid)
            if not article:
                continue
            score = 1.0 - rank / len(pmids)
            if score < threshold:
                continue
            sources.append(
                Source(
                    kind=SourceKind.CITATION,
                    title=article.get("title") or "Untitled",
                    url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
                    snippet=abstracts.get(pmid) or article.get("source") or "",
                    relevance_score=score,
                    external_id=pmid,
                    authors=tuple(a["name"] for a in article.get("authors") or [] if a.get("name")),
                    publication_date=article.get("pubdate") or None,
                )
            )
        return sources

    async def _get(self, endpoint: str, params: dict) -> httpx.Response:
        response = await self.http_client.get(f"{self.base_url}/{endpoint}", params=params)
        response.raise_for_status()
        return response
