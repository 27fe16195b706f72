"""Telemetry service — logging, OpenTelemetry configuration and span helpers.

Provides a unified way to configure tracing and log output at start-up and
a decorator to instrument functions with spans.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.semconv.resource import ResourceAttributes

from chatcore.config.models import TelemetryConfig

P = ParamSpec("P")
R = TypeVar("R")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class TelemetryService:
    """Configures OpenTelemetry tracing and root logging."""

    def __init__(self, config: TelemetryConfig, version: str = "0.1.0") -> None:
        self.resource = Resource.create(
            {
                ResourceAttributes.SERVICE_NAME: config.service_name,
                ResourceAttributes.SERVICE_VERSION: version,
            }
        )
        self.provider = TracerProvider(resource=self.resource)

        # Spans are always recorded; exporting them is opt-in for local dev
        if config.console_export:
            self.provider.add_span_processor(
                SimpleSpanProcessor(ConsoleSpanExporter())
            )

        trace.set_tracer_provider(self.provider)
        self.tracer = trace.get_tracer(config.service_name, version)

        self._setup_logging(config.log_level)

    @staticmethod
    def _setup_logging(level: str) -> None:
        """Configure root logging once; later calls only adjust the level."""
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            logging.basicConfig(format=LOG_FORMAT)
        root_logger.setLevel(level.upper())

    def shutdown(self) -> None:
        self.provider.shutdown()


def trace_span(name: str | None = None) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator to wrap a function execution in an OpenTelemetry span.

    Args:
        name: Optional span name. If not provided, uses the function name.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        span_name = name or func.__name__

        @functools.wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                try:
                    return await func(*args, **kwargs)  # type: ignore
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                    raise

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                    raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper

    return decorator
