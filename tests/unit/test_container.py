"""Unit tests for building the service container from configuration."""

import pytest

from chatcore.config.models import AppConfig
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.providers.adapters.pydantic_ai_adapter import PydanticAIAdapter
from chatcore.providers.alerts.notifiers import LoggingAlertNotifier, WebhookAlertNotifier
from chatcore.providers.context.http_retrieval import HttpRetrievalProvider
from chatcore.providers.context.pubmed import PubMedCitationProvider
from chatcore.providers.safety.llama_guard import LlamaGuardClassifier
from chatcore.services.container import build_services
from chatcore.storage.records import InMemoryRecordStore

PROVIDERS = [
    {"id": "claude", "kind": "anthropic", "priority": 1, "defaultModel": "claude-sonnet", "apiKey": "k"},
    {"id": "gemini", "kind": "google", "priority": 2, "defaultModel": "gemini-pro", "apiKey": "k"},
    {
        "id": "together",
        "kind": "openai",
        "priority": 3,
        "defaultModel": "llama-3",
        "baseUrl": "https://api.together.xyz/v1",
        "apiKey": "k",
    },
]


@pytest.fixture
def http_pool():
    return HttpClientPool()


def test_minimal_config(http_pool):
    services = build_services(AppConfig(providers=PROVIDERS), http_pool)

    assert services.provider_ids == ["claude", "gemini", "together"]
    assert all(isinstance(a, PydanticAIAdapter) for a in services.router.resolve_order(None))
    assert isinstance(services.store, InMemoryRecordStore)
    assert isinstance(services.moderation.notifier, LoggingAlertNotifier)
    assert services.moderation.classifier is None
    assert services.chat.retriever is None
    assert services.chat.citations is None


def test_full_config(http_pool):
    config = AppConfig.model_validate(
        {
            "providers": PROVIDERS,
            "moderation": {"safetyClassifier": {"provider": "llama_guard", "model": "guard"}},
            "context": {
                "retrieval": {"endpoint": "https://kb.example.com/search"},
                "citations": {},
            },
            "alerts": {"provider": "webhook", "url": "https://hooks.example.com/alert"},
        }
    )

    services = build_services(config, http_pool)

    assert isinstance(services.moderation.classifier, LlamaGuardClassifier)
    assert isinstance(services.moderation.notifier, WebhookAlertNotifier)
    assert isinstance(services.chat.retriever, HttpRetrievalProvider)
    assert isinstance(services.chat.citations, PubMedCitationProvider)
    # moderation and chat share one background task set
    assert services.moderation.background is services.chat.background


def test_unknown_forced_provider_fails_at_startup(http_pool):
    config = AppConfig(providers=PROVIDERS, routing={"forceProvider": "mistral"})

    with pytest.raises(ValueError, match="not registered"):
        build_services(config, http_pool)


def test_unknown_provider_kind_fails_at_startup(http_pool):
    config = AppConfig(providers=[{"id": "x", "kind": "cohere", "defaultModel": "m"}])

    with pytest.raises(ValueError, match="Unknown LLM provider kind"):
        build_services(config, http_pool)


def test_unknown_collaborator_fails_at_startup(http_pool):
    config = AppConfig(providers=PROVIDERS, storage={"provider": "postgres"})

    with pytest.raises(ValueError, match="No provider registered"):
        build_services(config, http_pool)


def test_webhook_alerts_require_url(http_pool):
    config = AppConfig(providers=PROVIDERS, alerts={"provider": "webhook"})

    with pytest.raises(ValueError, match="alerts.url"):
        build_services(config, http_pool)
