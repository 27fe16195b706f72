"""Application-specific exceptions."""

from __future__ import annotations

from chatcore.models.domain import ModerationVerdict


class OrchestrationError(Exception):
    """Base class for errors raised by the orchestration core."""


class ProviderError(OrchestrationError):
    """Network or provider-side failure.  Retryable: triggers fallback."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"{provider_id}: {message}")


class ValidationError(OrchestrationError):
    """Malformed or unacceptable request.  Never retried on another provider."""

    def __init__(self, provider_id: str | None, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"{provider_id}: {message}" if provider_id else message)


class AggregateProviderFailure(OrchestrationError):
    """Raised when every candidate of a routing or consensus attempt failed."""

    def __init__(
        self,
        last_error: BaseException | None,
        attempted: list[str] | None = None,
    ) -> None:
        self.last_error = last_error
        self.attempted = attempted or []
        super().__init__(
            f"All LLM providers failed. Last error: {last_error or 'Unknown error'}"
        )


class StreamInterruptedError(OrchestrationError):
    """A provider failed after it had already emitted chunks to the caller."""

    def __init__(self, provider_id: str, cause: BaseException) -> None:
        self.provider_id = provider_id
        self.cause = cause
        super().__init__(f"Stream from {provider_id} interrupted: {cause}")


class ContentBlockedError(OrchestrationError):
    """Raised when the moderation gate returns a blocking verdict."""

    def __init__(self, verdict: ModerationVerdict) -> None:
        self.verdict = verdict
        super().__init__(verdict.reason or "Content blocked by moderation")


class InfrastructureFailure(OrchestrationError):
    """A persistence or alerting collaborator is unreachable.  Always absorbed."""


def is_retryable(exc: BaseException) -> bool:
    """Whether *exc* allows the router to move on to the next candidate."""
    return not isinstance(exc, ValidationError)


# Client-facing texts.  Provider error detail can carry raw backend bodies, so
# it is logged and never sent to the caller.
INVALID_REQUEST_MESSAGE = "The request could not be processed. Please shorten or rephrase it."
PROVIDERS_UNAVAILABLE_MESSAGE = "All AI providers are currently unavailable. Please try again shortly."
STREAM_FAILED_MESSAGE = "The response could not be completed. Please try again."
