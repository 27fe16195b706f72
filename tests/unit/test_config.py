"""Unit tests for configuration models and the loader."""

import json
from pathlib import Path

import pydantic
import pytest

from chatcore.config.loader import load_config
from chatcore.config.models import AppConfig, ProviderConfig
from chatcore.models.domain import TaskCategory


@pytest.fixture
def write_config(tmp_path):
    def _write(document):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write


def _provider(pid, **extra):
    return {"id": pid, "kind": "anthropic", "defaultModel": f"{pid}-default", **extra}


def test_env_placeholders_are_resolved(write_config, monkeypatch):
    monkeypatch.setenv("CLAUDE_KEY", "sk-123")
    monkeypatch.delenv("FORCE_PROVIDER", raising=False)
    path = write_config(
        {
            "providers": [_provider("claude", apiKey="${CLAUDE_KEY}")],
            "routing": {"forceProvider": "${FORCE_PROVIDER:-}"},
            "storage": {"provider": "redis", "url": "${REDIS_URL:-redis://cache:6379/1}"},
        }
    )

    config = load_config(path)

    assert config.providers[0].api_key == "sk-123"
    # blank placeholder default means "not forced"
    assert config.routing.forced_provider is None
    assert config.storage.url == "redis://cache:6379/1"


def test_unset_placeholder_without_default_is_kept(write_config, monkeypatch):
    monkeypatch.delenv("MISSING_KEY", raising=False)
    path = write_config({"providers": [_provider("claude", apiKey="${MISSING_KEY}")]})

    assert load_config(path).providers[0].api_key == "${MISSING_KEY}"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_top_level_must_be_object(write_config):
    with pytest.raises(ValueError, match="JSON object"):
        load_config(write_config([1, 2, 3]))


def test_duplicate_provider_ids_rejected():
    with pytest.raises(pydantic.ValidationError, match="Duplicate provider ids"):
        AppConfig(providers=[_provider("a"), _provider("a")])


def test_defaults():
    config = AppConfig(providers=[_provider("claude")])

    assert config.routing.forced_provider is None
    assert config.routing.consensus_categories == [TaskCategory.MEDICAL]
    assert config.routing.consensus_min_providers == 2
    assert "bomb making" in config.moderation.illegal_keywords
    assert config.moderation.safety_classifier is None
    assert config.storage.provider == "memory"
    assert config.alerts.provider == "log"


def test_config_is_frozen():
    config = AppConfig(providers=[_provider("claude")])

    with pytest.raises(pydantic.ValidationError):
        config.routing = None


def test_model_for_category():
    provider = ProviderConfig.model_validate(
        _provider("together", models={"coding": "qwen-coder", "thinking": "deepseek-r1"})
    )

    assert provider.model_for(TaskCategory.CODING) == "qwen-coder"
    assert provider.model_for(TaskCategory.GENERAL) == "together-default"


def test_example_config_loads():
    example = Path(__file__).resolve().parents[2] / "config.example.json"

    config = load_config(example)

    assert [p.provider_id for p in config.providers] == ["claude", "gemini", "together"]
    assert config.context.citations is not None
    assert config.moderation.safety_classifier.provider == "llama_guard"
