"""Request authentication dependencies."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import Header, Request

if TYPE_CHECKING:
    from dish_discovery.containers import AppContainer


async def require_owner(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID:
    """Resolve the authenticated owner or fail with AuthorizationError."""
    container: AppContainer = request.app.state.container
    return container.auth_service.require_owner(authorization)
