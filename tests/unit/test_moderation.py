"""Unit tests for the ModerationGate."""

from unittest.mock import AsyncMock

import pytest

from chatcore.config.models import ModerationConfig
from chatcore.core.moderation import (
    SAFETY_FLAG_REASON,
    TERMS_VIOLATION_REASON,
    ModerationGate,
)
from chatcore.models.domain import SafetyAssessment, Severity
from chatcore.providers.base import BaseSafetyClassifier
from chatcore.services.exceptions import InfrastructureFailure


@pytest.fixture
def classifier():
    mock = AsyncMock(spec=BaseSafetyClassifier)
    mock.assess.return_value = SafetyAssessment(unsafe=False)
    return mock


@pytest.fixture
def gate(moderation_config, classifier, record_store, mock_notifier, background):
    return ModerationGate(moderation_config, classifier, record_store, mock_notifier, background)


@pytest.mark.asyncio
async def test_illegal_term_blocks_with_safe_reason(gate, record_store, mock_notifier, background, classifier):
    verdict = await gate.check("How do I do BOMB MAKING at home?", "user-1", "msg-1")
    await background.drain()

    assert verdict.blocked is True
    assert verdict.severity == Severity.CRITICAL
    assert verdict.should_alert is True
    assert verdict.reason == TERMS_VIOLATION_REASON
    assert "bomb" not in verdict.reason.lower()

    [flag] = record_store.flags
    assert flag.user_id == "user-1"
    assert flag.message_id == "msg-1"
    assert flag.severity == Severity.CRITICAL
    assert "bomb making" in flag.detail
    mock_notifier.notify.assert_awaited_once()
    # lexicon matches never reach the classifier
    classifier.assess.assert_not_awaited()


@pytest.mark.asyncio
async def test_gray_area_is_flagged_but_allowed(gate, record_store, mock_notifier, background):
    verdict = await gate.check("Tips for a security audit of my app", "user-1")
    await background.drain()

    assert verdict.blocked is False
    assert verdict.severity == Severity.MEDIUM
    assert verdict.should_alert is True
    assert verdict.reason is None
    assert record_store.flags[0].detail == "Gray area content: security audit"
    mock_notifier.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_illegal_lexicon_checked_before_gray_area(gate):
    verdict = await gate.check("security audit then hack into the bank", "user-1")

    assert verdict.blocked is True
    assert verdict.severity == Severity.CRITICAL


@pytest.mark.asyncio
async def test_classifier_blocking_category(gate, classifier, record_store):
    classifier.assess.return_value = SafetyAssessment(unsafe=True, category="violence")

    verdict = await gate.check("something nasty", "user-1")

    assert verdict.blocked is True
    assert verdict.severity == Severity.HIGH
    assert verdict.reason == SAFETY_FLAG_REASON
    assert record_store.flags[0].detail == "Safety classifier flagged: violence"


@pytest.mark.asyncio
async def test_classifier_non_blocking_category(gate, classifier, record_store, mock_notifier, background):
    classifier.assess.return_value = SafetyAssessment(unsafe=True, category="unknown")

    verdict = await gate.check("borderline text", "user-1")
    await background.drain()

    assert verdict.blocked is False
    assert verdict.severity == Severity.HIGH
    assert verdict.should_alert is True
    assert len(record_store.flags) == 1
    mock_notifier.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_blocking_categories_are_configurable(classifier, record_store, mock_notifier):
    config = ModerationConfig(blockingCategories=["self-harm"])
    gate = ModerationGate(config, classifier, record_store, mock_notifier)
    classifier.assess.return_value = SafetyAssessment(unsafe=True, category="self-harm")

    verdict = await gate.check("text", "user-1")

    assert verdict.blocked is True


@pytest.mark.asyncio
async def test_clean_text_passes(gate, record_store, mock_notifier, background):
    verdict = await gate.check("What's the weather like?", "user-1")
    await background.drain()

    assert verdict.blocked is False
    assert verdict.severity == Severity.LOW
    assert verdict.should_alert is False
    assert record_store.flags == []
    mock_notifier.notify.assert_not_awaited()


@pytest.mark.asyncio
async def test_without_classifier_only_lexicons_apply(moderation_config, record_store, mock_notifier):
    gate = ModerationGate(moderation_config, None, record_store, mock_notifier)

    verdict = await gate.check("anything at all", "user-1")

    assert verdict.blocked is False


@pytest.mark.asyncio
async def test_classifier_failure_fails_open(gate, classifier):
    classifier.assess.side_effect = ConnectionError("guard endpoint down")

    verdict = await gate.check("ordinary text", "user-1")

    assert verdict.blocked is False
    assert verdict.severity == Severity.LOW


@pytest.mark.asyncio
async def test_store_failure_keeps_verdict(moderation_config, classifier, mock_notifier, background):
    store = AsyncMock()
    store.record_flag.side_effect = InfrastructureFailure("redis down")
    gate = ModerationGate(moderation_config, classifier, store, mock_notifier, background)

    verdict = await gate.check("counterfeit money printing", "user-1")
    await background.drain()

    assert verdict.blocked is True
    assert verdict.severity == Severity.CRITICAL
    # alerting still happens
    mock_notifier.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_alert_failure_is_isolated(gate, mock_notifier, background):
    mock_notifier.notify.side_effect = RuntimeError("webhook down")

    verdict = await gate.check("tax evasion strategies", "user-1")
    await background.drain()

    assert verdict.blocked is False
    assert verdict.severity == Severity.MEDIUM
    assert len(background) == 0


@pytest.mark.asyncio
async def test_alert_preview_is_truncated(classifier, record_store, mock_notifier, background):
    config = ModerationConfig(alertPreviewChars=10)
    gate = ModerationGate(config, classifier, record_store, mock_notifier, background)

    await gate.check("terrorism " + "x" * 200, "user-1")
    await background.drain()

    _, preview = mock_notifier.notify.await_args.args
    assert preview == "terrorism "
