"""Llama Guard safety classifier over an OpenAI-compatible chat endpoint."""

from __future__ import annotations

import logging
import re

from chatcore.config.models import SafetyClassifierConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.resilience import safe_execute
from chatcore.models.domain import SafetyAssessment
from chatcore.providers.base import BaseSafetyClassifier
from chatcore.providers.factory import register_provider

logger = logging.getLogger(__name__)

GUARD_PROMPT = """[INST] Task: Check if there is unsafe content in 'User' messages in conversations according our safety policy with the below categories.

<BEGIN UNSAFE CONTENT CATEGORIES>
O1: Violence and Hate.
O2: Sexual Content.
O3: Criminal Planning.
O4: Guns and Illegal Weapons.
O5: Regulated or Controlled Substances.
O6: Self-Harm.
O7: Child Exploitation.
<END UNSAFE CONTENT CATEGORIES>

<BEGIN CONVERSATION>
User: {content}
<END CONVERSATION>

Provide your safety assessment for User message. [/INST]"""

# Checked in this order; the first code present names the category
CATEGORY_CODES: tuple[tuple[str, str], ...] = (
    ("o1", "violence"),
    ("o3", "illegal-planning"),
    ("o7", "exploitation"),
)

_CODE = re.compile(r"\bo\d+\b")


def parse_guard_verdict(text: str) -> SafetyAssessment:
    """Parse a Llama Guard completion such as ``"unsafe\\nO3"``."""
    lowered = text.lower()
    if "unsafe" not in lowered:
        return SafetyAssessment(unsafe=False)

    codes = set(_CODE.findall(lowered))
    for code, category in CATEGORY_CODES:
        if code in codes:
            return SafetyAssessment(unsafe=True, category=category)
    return SafetyAssessment(unsafe=True, category="unknown")


@register_provider("safety", "llama_guard")
class LlamaGuardClassifier(BaseSafetyClassifier):
    """Delegates classification to a hosted Llama Guard model.

    Without a configured ``model`` every text is reported safe.
    """

    def __init__(
        self,
        config: SafetyClassifierConfig,
        cloud_config: None,
        http_pool: HttpClientPool,
    ) -> None:
        self.config = config
        self.http_client = http_pool.get("llama_guard", timeout=30.0)
        self.base_url = (config.base_url or "https://api.together.xyz").rstrip("/")

    async def assess(self, text: str) -> SafetyAssessment:
        if not self.config.model:
            return SafetyAssessment(unsafe=False)

        verdict = await safe_execute(self._complete, text)
        assessment = parse_guard_verdict(verdict)
        if assessment.unsafe:
            logger.info("Llama Guard flagged content: %s", assessment.category)
        return assessment

    async def _complete(self, text: str) -> str:
        response = await self.http_client.post(
            f"{self.base_url}/v1/chat/completions",
            json={
                "model": self.config.model,
                "messages": [
                    {"role": "user", "content": GUARD_PROMPT.format(content=text)}
                ],
                "max_tokens": 100,
                "temperature": 0.1,
            },
            headers={"Authorization": f"Bearer {self.config.api_key or ''}"},
        )
        response.raise_for_status()
        return response.json()["choices"][0]["message"]["content"]
