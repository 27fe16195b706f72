"""Domain models shared across the application.

Every model here is frozen: a value is constructed once and then only read.
Wire names are camelCase (``tokenCount``, ``providerId`` …); Python code uses
the snake_case attribute names.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TaskCategory(StrEnum):
    """Lexically-classified intent bucket used for routing and prompt shaping."""

    GENERAL = "general"
    CODING = "coding"
    MEDICAL = "medical"
    THINKING = "thinking"
    LONGFORM = "longform"
    MULTILINGUAL = "multilingual"


class Severity(StrEnum):
    """Moderation severity levels, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReviewDecision(StrEnum):
    """Operator outcome for a moderation flag."""

    APPROVED = "approved"
    REJECTED = "rejected"


class ValidationMethod(StrEnum):
    """How an answer was validated before being returned."""

    SINGLE = "single"
    CONSENSUS = "consensus"
    RAG_VERIFIED = "rag_verified"


class SourceKind(StrEnum):
    """Origin of a supplementary source snippet."""

    CITATION = "citation"
    RETRIEVAL = "retrieval"
    WEB = "web"
    DOCUMENT = "document"


class Message(BaseModel):
    """A single conversation turn."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class Source(BaseModel):
    """A supplementary source produced by a context provider."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: SourceKind
    title: str
    url: str | None = None
    snippet: str = ""
    relevance_score: float | None = Field(None, alias="relevanceScore")
    # Citation detail (bibliographic providers only)
    external_id: str | None = Field(None, alias="externalId")
    authors: tuple[str, ...] = ()
    publication_date: str | None = Field(None, alias="publicationDate")


class LLMRequest(BaseModel):
    """A provider-facing request; read-only once constructed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    messages: tuple[Message, ...]
    task_type: TaskCategory | None = Field(None, alias="taskType")
    max_tokens: int = Field(4096, alias="maxTokens", gt=0)
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    streaming: bool = False

    @property
    def category(self) -> TaskCategory:
        """The request's category, defaulting to ``general``."""
        return self.task_type or TaskCategory.GENERAL

    @property
    def last_user_message(self) -> Message | None:
        for message in reversed(self.messages):
            if message.role == Role.USER:
                return message
        return None


class ResponseMetadata(BaseModel):
    """Validation metadata attached to an :class:`LLMResponse`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sources: tuple[Source, ...] = ()
    confidence_score: float | None = Field(None, alias="confidenceScore", ge=0.0, le=1.0)
    validation_method: ValidationMethod | None = Field(None, alias="validationMethod")


class LLMResponse(BaseModel):
    """Response produced by exactly one provider adapter."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: str
    model_id: str = Field(alias="modelId")
    provider_id: str = Field(alias="providerId")
    token_count: int = Field(0, alias="tokenCount", ge=0)
    finish_reason: str | None = Field(None, alias="finishReason")
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ModerationVerdict(BaseModel):
    """Outcome of a moderation check.

    ``reason`` is always user-safe: it never contains the matched term.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    blocked: bool = False
    reason: str | None = None
    severity: Severity = Severity.LOW
    should_alert: bool = Field(False, alias="shouldAlert")


class SafetyAssessment(BaseModel):
    """Parsed result of a delegated safety-classification call."""

    model_config = ConfigDict(frozen=True)

    unsafe: bool = False
    category: str | None = None
