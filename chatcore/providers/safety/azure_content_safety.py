"""Azure Content Safety classifier implementation."""

from __future__ import annotations

from chatcore.config.models import AzureConfig, SafetyClassifierConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.models.domain import SafetyAssessment
from chatcore.providers.base import BaseSafetyClassifier
from chatcore.providers.factory import register_provider

# Azure category name → moderation category
CATEGORY_MAP: dict[str, str] = {
    "Violence": "violence",
    "Hate": "violence",
    "SelfHarm": "self-harm",
    "Sexual": "sexual",
}

# Azure severities are 0/2/4/6 (safe/low/medium/high)
THRESHOLDS: dict[str, int] = {"low": 2, "medium": 4, "high": 6}


@register_provider("safety", "azure")
class AzureContentSafetyClassifier(BaseSafetyClassifier):
    """Safety classification backed by Azure Content Safety API."""

    def __init__(
        self,
        config: SafetyClassifierConfig,
        cloud_config: AzureConfig | None,
        http_pool: HttpClientPool,
    ) -> None:
        if cloud_config is None or not cloud_config.content_safety_endpoint:
            raise ValueError("Azure safety classifier requires azureConfig.contentSafetyEndpoint")
        self.config = config
        self.azure_config = cloud_config
        self.threshold = THRESHOLDS.get(config.threshold, THRESHOLDS["medium"])

        # HttpClientPool manages the underlying aiohttp session
        self.transport = http_pool.get_azure_transport()

        from azure.identity.aio import ClientSecretCredential

        self.credential = ClientSecretCredential(
            tenant_id=self.azure_config.tenant_id,
            client_id=self.azure_config.client_id,
            client_secret=self.azure_config.client_secret,
            transport=self.transport,
        )

        from azure.ai.contentsafety.aio import ContentSafetyClient

        self.client = ContentSafetyClient(
            endpoint=self.azure_config.content_safety_endpoint,
            credential=self.credential,
            transport=self.transport,
        )

    async def assess(self, text: str) -> SafetyAssessment:
        """Analyse *text*; the most severe category over threshold wins.

        ``HttpResponseError`` propagates: the moderation gate treats it as an
        infrastructure failure.
        """
        from azure.ai.contentsafety.models import AnalyzeTextOptions

        response = await self.client.analyze_text(AnalyzeTextOptions(text=text))

        worst: tuple[int, str] | None = None
        for item in response.categories_analysis or []:
            # category is an enum on real responses, a plain string in some SDK versions
            name = getattr(item.category, "value", str(item.category))
            severity = item.severity or 0
            if severity < self.threshold:
                continue
            category = CATEGORY_MAP.get(name, name.lower())
            if worst is None or severity > worst[0]:
                worst = (severity, category)

        if worst is None:
            return SafetyAssessment(unsafe=False)
        return SafetyAssessment(unsafe=True, category=worst[1])
