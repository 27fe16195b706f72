"""Pydantic models for the ``config.json`` application configuration.

The whole tree is frozen.  It is loaded once at process start and passed
explicitly into the components that need it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatcore.models.domain import TaskCategory

_FROZEN = ConfigDict(frozen=True, populate_by_name=True)


# ---------------------------------------------------------------------------
# LLM providers
# ---------------------------------------------------------------------------


class ProviderConfig(BaseModel):
    """Configuration for a single provider adapter (one backend model family)."""

    model_config = _FROZEN

    provider_id: str = Field(alias="id")
    kind: str  # "anthropic", "google", "openai", "azure"
    priority: int = 100
    default_model: str = Field(alias="defaultModel")
    # Per-category model overrides; categories not listed use ``defaultModel``
    models: dict[TaskCategory, str] = Field(default_factory=dict)
    api_key: str | None = Field(None, alias="apiKey")
    base_url: str | None = Field(None, alias="baseUrl")
    api_version: str | None = Field(None, alias="apiVersion")
    timeout: float = 60.0

    def model_for(self, category: TaskCategory) -> str:
        return self.models.get(category, self.default_model)


def _default_preferences() -> dict[TaskCategory, list[str]]:
    return {
        TaskCategory.CODING: ["claude", "gemini", "together"],
        TaskCategory.MEDICAL: ["claude", "gemini", "together"],
        TaskCategory.THINKING: ["claude", "gemini", "together"],
        TaskCategory.GENERAL: ["gemini", "claude", "together"],
        TaskCategory.MULTILINGUAL: ["gemini", "claude", "together"],
        TaskCategory.LONGFORM: ["claude", "together", "gemini"],
    }


class RoutingConfig(BaseModel):
    """Provider ordering policy.

    - ``forceProvider`` collapses every candidate list to one adapter.
    - ``preferences`` lists preferred provider ids per category; providers
      not listed follow in ascending priority order.
    - ``consensusCategories`` are the categories that are cross-checked when
      the caller asks for heightened validation.
    """

    model_config = _FROZEN

    forced_provider: str | None = Field(None, alias="forceProvider")
    preferences: dict[TaskCategory, list[str]] = Field(
        default_factory=_default_preferences
    )
    consensus_categories: list[TaskCategory] = Field(
        default_factory=lambda: [TaskCategory.MEDICAL], alias="consensusCategories"
    )
    consensus_min_providers: int = Field(2, alias="consensusMinProviders", ge=1)

    @field_validator("forced_provider", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------

DEFAULT_ILLEGAL_KEYWORDS = [
    "bomb making",
    "illegal drugs",
    "human trafficking",
    "child abuse",
    "terrorism",
    "hack into",
    "steal credit card",
    "counterfeit money",
]

DEFAULT_GRAY_AREA_KEYWORDS = [
    "penetration testing",
    "security audit",
    "vulnerability assessment",
    "exploit development",
    "reverse engineering",
    "darkweb",
    "cryptocurrency scam",
    "tax evasion",
]


class SafetyClassifierConfig(BaseModel):
    """Delegated safety classifier (``llama_guard`` or ``azure``)."""

    model_config = _FROZEN

    provider: str
    model: str | None = None
    base_url: str | None = Field(None, alias="baseUrl")
    api_key: str | None = Field(None, alias="apiKey")
    # Azure severity threshold: "low", "medium" or "high"
    threshold: str = "medium"


class ModerationConfig(BaseModel):
    """Content moderation configuration."""

    model_config = _FROZEN

    illegal_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ILLEGAL_KEYWORDS), alias="illegalKeywords"
    )
    gray_area_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GRAY_AREA_KEYWORDS),
        alias="grayAreaKeywords",
    )
    blocking_categories: list[str] = Field(
        default_factory=lambda: ["violence", "illegal-planning", "exploitation"],
        alias="blockingCategories",
    )
    safety_classifier: SafetyClassifierConfig | None = Field(
        None, alias="safetyClassifier"
    )
    alert_preview_chars: int = Field(100, alias="alertPreviewChars")


# ---------------------------------------------------------------------------
# Context providers
# ---------------------------------------------------------------------------


class RetrievalConfig(BaseModel):
    """Semantic document retrieval over HTTP."""

    model_config = _FROZEN

    provider: str = "http"
    endpoint: str
    api_key: str | None = Field(None, alias="apiKey")
    limit: int = 5
    threshold: float = 0.7


class CitationConfig(BaseModel):
    """Bibliographic citation enrichment (PubMed E-utilities)."""

    model_config = _FROZEN

    provider: str = "pubmed"
    base_url: str = Field(
        "https://eutils.ncbi.nlm.nih.gov/entrez/eutils", alias="baseUrl"
    )
    max_results: int = Field(5, alias="maxResults")


class ContextConfig(BaseModel):
    model_config = _FROZEN

    retrieval: RetrievalConfig | None = None
    citations: CitationConfig | None = None


# ---------------------------------------------------------------------------
# Persistence, alerting, telemetry
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    """Flag / usage record store."""

    model_config = _FROZEN

    provider: str = "memory"  # "memory" or "redis"
    url: str = "redis://localhost:6379/0"
    key_prefix: str = Field("chatcore:", alias="keyPrefix")
    flag_ttl_days: int = Field(90, alias="flagTtlDays", ge=1)


class AlertsConfig(BaseModel):
    """Operator alert delivery."""

    model_config = _FROZEN

    provider: str = "log"  # "log" or "webhook"
    url: str | None = None


class TelemetryConfig(BaseModel):
    model_config = _FROZEN

    service_name: str = Field("chatcore-api", alias="serviceName")
    console_export: bool = Field(False, alias="consoleExport")
    log_level: str = Field("INFO", alias="logLevel")


class AzureConfig(BaseModel):
    """Azure cloud configuration (content safety, Azure OpenAI)."""

    model_config = _FROZEN

    tenant_id: str = Field(alias="tenantId")
    client_id: str = Field(alias="clientId")
    client_secret: str = Field(alias="clientSecret")
    content_safety_endpoint: str | None = Field(None, alias="contentSafetyEndpoint")
    openai_endpoint: str | None = Field(None, alias="openAIEndpoint")


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------


class AppConfig(BaseModel):
    """Complete, immutable application configuration."""

    model_config = _FROZEN

    providers: list[ProviderConfig]
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    azure_config: AzureConfig | None = Field(None, alias="azureConfig")

    @field_validator("providers")
    @classmethod
    def _unique_ids(cls, value: list[ProviderConfig]) -> list[ProviderConfig]:
        ids = [p.provider_id for p in value]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider ids: {duplicates}")
        return value
