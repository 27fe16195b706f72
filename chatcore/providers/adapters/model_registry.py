"""Model registry — thin wrapper around pydantic-ai Model creation.

Creates and caches pydantic-ai :class:`Model` instances for one provider
adapter, keyed by model name.  An adapter uses a different model per task
category (``ProviderConfig.models``), so models are built lazily on first
use and reused afterwards.
"""

from __future__ import annotations

from pydantic_ai.models import Model

from chatcore.config.models import AzureConfig, ProviderConfig
from chatcore.core.http_client_pool import HttpClientPool


class ModelRegistry:
    """Builds pydantic-ai models for a single provider configuration.

    Usage::

        registry = ModelRegistry(provider_cfg, http_pool)
        model = registry.get_model("claude-3-5-sonnet-20241022")
    """

    SUPPORTED_KINDS = ("anthropic", "google", "openai", "azure")

    def __init__(
        self,
        config: ProviderConfig,
        http_pool: HttpClientPool,
        azure_config: AzureConfig | None = None,
    ) -> None:
        if config.kind not in self.SUPPORTED_KINDS:
            raise ValueError(
                f"Unknown LLM provider kind '{config.kind}' for '{config.provider_id}'. "
                f"Supported: {', '.join(self.SUPPORTED_KINDS)}"
            )
        self.config = config
        self._azure_config = azure_config
        self._http_client = http_pool.get(
            f"llm:{config.provider_id}", timeout=config.timeout
        )
        self._models: dict[str, Model] = {}

    def get_model(self, name: str) -> Model:
        """Return the cached model *name*, building it on first access."""
        if name not in self._models:
            self._models[name] = self._create_model(name)
        return self._models[name]

    def _create_model(self, name: str) -> Model:
        match self.config.kind:
            case "anthropic":
                return _build_anthropic_model(name, self.config, self._http_client)
            case "google":
                return _build_google_model(name, self.config, self._http_client)
            case "openai":
                return _build_openai_model(name, self.config, self._http_client)
            case "azure":
                return _build_azure_model(
                    name, self.config, self._azure_config, self._http_client
                )
            case _:
                raise ValueError(f"Unknown LLM provider kind '{self.config.kind}'")


# -----------------------------------------------------------------------
# Provider-specific model builders
# -----------------------------------------------------------------------


def _build_anthropic_model(name, cfg: ProviderConfig, http_client) -> Model:
    from pydantic_ai.models.anthropic import AnthropicModel
    from pydantic_ai.providers.anthropic import AnthropicProvider

    provider = AnthropicProvider(api_key=cfg.api_key, http_client=http_client)
    return AnthropicModel(name, provider=provider)


def _build_google_model(name, cfg: ProviderConfig, http_client) -> Model:
    from pydantic_ai.models.google import GoogleModel
    from pydantic_ai.providers.google import GoogleProvider

    provider = GoogleProvider(api_key=cfg.api_key, http_client=http_client)
    return GoogleModel(name, provider=provider)


def _build_openai_model(name, cfg: ProviderConfig, http_client) -> Model:
    """OpenAI or any OpenAI-compatible endpoint (Together, vLLM, …)."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openai import OpenAIProvider

    provider = OpenAIProvider(
        base_url=cfg.base_url,
        api_key=cfg.api_key,
        http_client=http_client,
    )
    return OpenAIChatModel(name, provider=provider)


def _build_azure_model(
    name, cfg: ProviderConfig, azure_cfg: AzureConfig | None, http_client
) -> Model:
    """Create a pydantic-ai ``OpenAIChatModel`` with ``AzureProvider``."""
    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.azure import AzureProvider

    endpoint = cfg.base_url or (azure_cfg.openai_endpoint if azure_cfg else None)
    if endpoint is None:
        raise ValueError("Azure LLM provider requires baseUrl or azureConfig.openAIEndpoint")

    provider = AzureProvider(
        azure_endpoint=endpoint,
        api_version=cfg.api_version,
        api_key=cfg.api_key or (azure_cfg.client_secret if azure_cfg else None),
        http_client=http_client,
    )
    return OpenAIChatModel(name, provider=provider)
