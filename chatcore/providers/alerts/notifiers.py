"""Operator alert notifiers for moderation flags."""

from __future__ import annotations

import logging

from chatcore.config.models import AlertsConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.resilience import safe_execute
from chatcore.models.domain import ModerationVerdict
from chatcore.providers.base import BaseAlertNotifier
from chatcore.providers.factory import register_provider

logger = logging.getLogger(__name__)


@register_provider("alerts", "log")
class LoggingAlertNotifier(BaseAlertNotifier):
    """Writes alerts to the application log at WARNING level."""

    def __init__(
        self,
        config: AlertsConfig | None = None,
        cloud_config: None = None,
        http_pool: HttpClientPool | None = None,
    ) -> None:
        self.config = config

    async def notify(self, verdict: ModerationVerdict, content_preview: str) -> None:
        logger.warning(
            "CONTENT ALERT severity=%s blocked=%s preview=%r",
            verdict.severity.value,
            verdict.blocked,
            content_preview,
        )


@register_provider("alerts", "webhook")
class WebhookAlertNotifier(BaseAlertNotifier):
    """POSTs a JSON alert to an operator webhook (Slack, n8n, PagerDuty…)."""

    def __init__(
        self,
        config: AlertsConfig,
        cloud_config: None,
        http_pool: HttpClientPool,
    ) -> None:
        if not config.url:
            raise ValueError("Webhook alerts require alerts.url")
        self.url = config.url
        self.http_client = http_pool.get("alerts", timeout=10.0)

    async def notify(self, verdict: ModerationVerdict, content_preview: str) -> None:
        await safe_execute(self._post, verdict, content_preview)

    async def _post(self, verdict: ModerationVerdict, content_preview: str) -> None:
        response = await self.http_client.post(
            self.url,
            json={
                "severity": verdict.severity.value,
                "blocked": verdict.blocked,
                "preview": content_preview,
            },
        )
        response.raise_for_status()
