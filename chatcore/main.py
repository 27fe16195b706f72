"""Chat orchestration API — FastAPI entry point."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from chatcore.api.router import register_exception_handlers, router
from chatcore.config.loader import load_config
from chatcore.core.http_client_pool import HttpClientPool
from chatcore.core.telemetry import TelemetryService
from chatcore.services.container import build_services

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
CONFIG_ENV = "CHATCORE_CONFIG"

# ---------------------------------------------------------------------------
# Request timeout middleware
# ---------------------------------------------------------------------------

REQUEST_TIMEOUT_SECONDS = 120  # 2 min max per request


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Cancel requests whose response has not started within the timeout.

    ``call_next`` returns as soon as the response headers are sent, so the
    bound covers a full JSON answer but only the moderation and retrieval
    phase of an SSE answer; the event stream body runs until its terminal
    event or a client disconnect.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        try:
            return await asyncio.wait_for(
                call_next(request),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except TimeoutError:
            return Response(
                content='{"detail":"Request timed out"}',
                status_code=504,
                media_type="application/json",
            )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — initialise and tear down shared resources."""
    config = load_config(os.environ.get(CONFIG_ENV, "config.json"))
    telemetry = TelemetryService(config.telemetry, VERSION)

    http_pool = HttpClientPool()
    app.state.services = build_services(config, http_pool)
    app.state.http_pool = http_pool

    logger.info("Chat API started — providers: %s", app.state.services.provider_ids)

    yield

    await app.state.services.close()
    await http_pool.close_all()
    telemetry.shutdown()
    logger.info("Chat API shutdown complete")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Chat Orchestration API",
    description="Moderated, multi-provider conversational AI orchestration",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(TimeoutMiddleware)
register_exception_handlers(app)
app.include_router(router)
