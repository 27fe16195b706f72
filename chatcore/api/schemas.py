"""Request and response schemas for the API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from chatcore.models.domain import Message, ReviewDecision, TaskCategory


class ChatRequest(BaseModel):
    """Incoming chat request body."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., min_length=1, description="The user's message")
    task_type: TaskCategory | None = Field(
        None, alias="taskType", description="Skip classification and use this category"
    )
    conversation_history: list[Message] = Field(
        default_factory=list, alias="conversationHistory"
    )
    stream: bool = False
    use_heightened_validation: bool = Field(
        False,
        alias="useHeightenedValidation",
        description="Cross-check the answer across providers for consensus categories",
    )
    message_id: str | None = Field(None, alias="messageId")


class ErrorResponse(BaseModel):
    """Body of a 4xx/5xx response."""

    error: str
    message: str


class HealthResponse(BaseModel):
    """Health-check response."""

    status: str = "ok"
    providers: list[str] = Field(default_factory=list)


class FlagReviewRequest(BaseModel):
    """Operator decision on a moderation flag."""

    decision: ReviewDecision
