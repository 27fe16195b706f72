"""Moderation gate — decides whether a user message may reach a provider.

Checks run in a fixed order and the first one that matches decides:

1. illegal lexicon      → critical, blocked
2. gray-area lexicon    → medium, allowed but flagged
3. safety classifier    → high; blocked only for blocking categories
4. nothing matched      → low, allowed

Every match writes a flag record and schedules an operator alert.  The
verdict's ``reason`` is user-facing and never names the matched term; the
term only goes into the flag record.

Collaborator failures (classifier, record store, alert delivery) are logged
and never change the verdict: the gate fails open.
"""

from __future__ import annotations

import logging

from chatcore.config.models import ModerationConfig
from chatcore.core.background import BackgroundTasks
from chatcore.core.telemetry import trace_span
from chatcore.models.domain import ModerationVerdict, SafetyAssessment, Severity
from chatcore.providers.base import BaseAlertNotifier, BaseSafetyClassifier
from chatcore.storage.records import BaseRecordStore

logger = logging.getLogger(__name__)

TERMS_VIOLATION_REASON = "This request violates our terms of service and cannot be processed."
SAFETY_FLAG_REASON = "This content has been flagged for safety reasons."


class ModerationGate:
    """Lexical + delegated content-safety check for inbound messages."""

    def __init__(
        self,
        config: ModerationConfig,
        classifier: BaseSafetyClassifier | None,
        store: BaseRecordStore,
        notifier: BaseAlertNotifier,
        background: BackgroundTasks | None = None,
    ) -> None:
        self.config = config
        self.classifier = classifier
        self.store = store
        self.notifier = notifier
        self.background = background or BackgroundTasks()
        self._illegal = tuple(k.lower() for k in config.illegal_keywords)
        self._gray_area = tuple(k.lower() for k in config.gray_area_keywords)
        self._blocking = frozenset(config.blocking_categories)

    @trace_span("moderation.check")
    async def check(
        self,
        text: str,
        user_id: str,
        message_id: str | None = None,
    ) -> ModerationVerdict:
        lowered = text.lower()

        term = _first_match(lowered, self._illegal)
        if term:
            verdict = ModerationVerdict(
                blocked=True,
                reason=TERMS_VIOLATION_REASON,
                severity=Severity.CRITICAL,
                should_alert=True,
            )
            await self._flag(verdict, text, user_id, message_id, f"Illegal content detected: {term}")
            return verdict

        term = _first_match(lowered, self._gray_area)
        if term:
            verdict = ModerationVerdict(
                blocked=False,
                severity=Severity.MEDIUM,
                should_alert=True,
            )
            await self._flag(verdict, text, user_id, message_id, f"Gray area content: {term}")
            return verdict

        assessment = await self._assess(text)
        if assessment.unsafe:
            blocked = assessment.category in self._blocking
            verdict = ModerationVerdict(
                blocked=blocked,
                reason=SAFETY_FLAG_REASON if blocked else None,
                severity=Severity.HIGH,
                should_alert=True,
            )
            await self._flag(
                verdict, text, user_id, message_id, f"Safety classifier flagged: {assessment.category}"
            )
            return verdict

        return ModerationVerdict()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _assess(self, text: str) -> SafetyAssessment:
        if self.classifier is None:
            return SafetyAssessment(unsafe=False)
        try:
            return await self.classifier.assess(text)
        except Exception:
            logger.exception("Safety classifier unavailable, allowing content")
            return SafetyAssessment(unsafe=False)

    async def _flag(
        self,
        verdict: ModerationVerdict,
        text: str,
        user_id: str,
        message_id: str | None,
        detail: str,
    ) -> None:
        logger.info(
            "Moderation flag: user=%s severity=%s blocked=%s",
            user_id,
            verdict.severity.value,
            verdict.blocked,
        )
        try:
            await self.store.record_flag(verdict, user_id, message_id, detail)
        except Exception:
            logger.exception("Failed to record moderation flag for user %s", user_id)

        if verdict.should_alert:
            preview = text[: self.config.alert_preview_chars]
            self.background.spawn(
                self.notifier.notify(verdict, preview), name=f"alert:{user_id}"
            )


def _first_match(lowered: str, terms: tuple[str, ...]) -> str | None:
    for term in terms:
        if term in lowered:
            return term
    return None
