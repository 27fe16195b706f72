"""Unit tests for the collaborator registry."""

from unittest.mock import MagicMock

import pytest

from chatcore.core.http_client_pool import HttpClientPool
from chatcore.providers import factory
from chatcore.providers.base import BaseAlertNotifier, BaseContextProvider
from chatcore.providers.factory import ProviderFactory, register_provider


@pytest.fixture(autouse=True)
def isolated_registry(monkeypatch):
    monkeypatch.setattr(factory, "_REGISTRY", dict(factory._REGISTRY))


class RecordingNotifier(BaseAlertNotifier):
    def __init__(self, config, cloud_config, http_pool):
        self.config = config

    async def notify(self, verdict, content_preview):
        pass


def test_create_returns_registered_implementation():
    register_provider("alerts", "recording")(RecordingNotifier)

    notifier = ProviderFactory.create(
        BaseAlertNotifier, "recording", None, None, MagicMock(spec=HttpClientPool)
    )

    assert isinstance(notifier, RecordingNotifier)
    assert "recording" in ProviderFactory.available("alerts")


def test_registration_requires_component_base():
    with pytest.raises(TypeError, match="BaseContextProvider"):
        register_provider("context", "wrong")(RecordingNotifier)

    assert "wrong" not in ProviderFactory.available("context")


def test_registration_requires_declared_component():
    with pytest.raises(ValueError, match="Unknown component"):
        register_provider("ranker", "gcp")(RecordingNotifier)


def test_unknown_provider_lists_alternatives():
    with pytest.raises(ValueError, match=r"Available context providers: \["):
        ProviderFactory.create(
            BaseContextProvider, "vertex", None, None, MagicMock(spec=HttpClientPool)
        )


def test_undeclared_base_is_rejected():
    with pytest.raises(ValueError, match="not a declared provider component"):
        ProviderFactory.create(dict, "x", None, None, MagicMock(spec=HttpClientPool))
