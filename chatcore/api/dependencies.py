"""FastAPI dependency injection — service lookup and caller identity."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Request

from chatcore.services.container import ChatServices


@dataclass
class CallerContext:
    """Caller identity as asserted by the upstream gateway."""

    user_id: str
    project_id: str | None = None


def get_services(request: Request) -> ChatServices:
    """Retrieve the :class:`ChatServices` from app state."""
    return request.app.state.services


async def get_caller(
    x_user_id: str = Header(..., alias="X-User-Id", description="Authenticated user ID"),
    x_project_id: str | None = Header(
        None, alias="X-Project-Id", description="Scope retrieval to this project"
    ),
) -> CallerContext:
    """Resolve the caller from gateway headers.  Authentication happens upstream."""
    return CallerContext(user_id=x_user_id, project_id=x_project_id or None)
