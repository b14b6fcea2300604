"""Visit history, dish edits and visit statistics endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from dish_discovery.api.auth import require_owner
from dish_discovery.api.models import (  # noqa: TC001
    DishUpdateRequest,
    VisitUpdateRequest,
)
from dish_discovery.api.payloads import stats_payload, visit_payload

if TYPE_CHECKING:
    from dish_discovery.containers import AppContainer

router = APIRouter(prefix="/api", tags=["visits"])


@router.get("/visits")
async def list_visits(
    request: Request,
    q: str | None = None,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """List visits, newest first, optionally filtered by a search query."""
    container: AppContainer = request.app.state.container
    visits = container.visit_service.search_visits(owner_id, q)
    return {"visits": [visit_payload(visit) for visit in visits]}


@router.get("/visits/{visit_id}")
async def get_visit(
    visit_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    visit = container.visit_service.get_visit(owner_id, visit_id)
    return {"visit": visit_payload(visit)}


@router.patch("/visits/{visit_id}")
async def update_visit(
    visit_id: UUID,
    body: VisitUpdateRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Apply a partial update and return the stored visit."""
    container: AppContainer = request.app.state.container
    container.visit_service.update_visit(
        owner_id, visit_id, body.model_dump(exclude_unset=True)
    )
    visit = container.visit_service.get_visit(owner_id, visit_id)
    return {"visit": visit_payload(visit)}


@router.delete("/visits/{visit_id}")
async def delete_visit(
    visit_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, str]:
    container: AppContainer = request.app.state.container
    container.visit_service.delete_visit(owner_id, visit_id)
    return {"status": "ok"}


@router.patch("/dishes/{dish_id}")
async def update_dish(
    dish_id: UUID,
    body: DishUpdateRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, str]:
    container: AppContainer = request.app.state.container
    container.visit_service.update_dish(
        owner_id, dish_id, body.model_dump(exclude_unset=True)
    )
    return {"status": "ok"}


@router.delete("/dishes/{dish_id}")
async def delete_dish(
    dish_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, str]:
    container: AppContainer = request.app.state.container
    container.visit_service.delete_dish(owner_id, dish_id)
    return {"status": "ok"}


@router.get("/stats")
async def visit_stats(
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Totals, average dish rating and favorite restaurant."""
    container: AppContainer = request.app.state.container
    return stats_payload(container.stats_service.get_stats(owner_id))
