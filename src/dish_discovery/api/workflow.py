"""Visit capture workflow endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from dish_discovery.api.auth import require_owner
from dish_discovery.api.models import (  # noqa: TC001
    CaptureRequest,
    CompleteVisitRequest,
    RateRequest,
    SelectRequest,
)

if TYPE_CHECKING:
    from dish_discovery.containers import AppContainer

router = APIRouter(prefix="/api/workflow", tags=["workflow"])


@router.get("")
async def current_workflow(
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Return the owner's draft visit."""
    container: AppContainer = request.app.state.container
    return container.workflows.get(owner_id).snapshot()


@router.post("/start")
async def start_workflow(
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Start a new visit."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    workflow.start()
    return workflow.snapshot()


@router.post("/capture")
async def capture_photo(
    body: CaptureRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Store the menu photo for analysis."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    workflow.capture(body.image)
    return workflow.snapshot()


@router.post("/analyze")
async def analyze_photo(
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Extract dishes from the captured photo."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    candidates = await workflow.analyze()
    snapshot = workflow.snapshot()
    snapshot["no_dishes_found"] = not candidates
    return snapshot


@router.post("/select")
async def select_dishes(
    body: SelectRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Choose the dishes that were ordered."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    workflow.select(body.indices)
    return workflow.snapshot()


@router.post("/rate")
async def rate_dish(
    body: RateRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Rate one selected dish."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    workflow.rate(
        body.dish_id,
        body.rating,
        notes=body.notes,
        want_to_recreate=body.want_to_recreate,
    )
    return workflow.snapshot()


@router.post("/complete")
async def complete_visit(
    body: CompleteVisitRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Save the visit; recipes for flagged dishes are generated afterwards."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    visit_id = await workflow.complete_visit(
        body.restaurant_name,
        location=body.location,
        notes=body.notes,
        overall_rating=body.overall_rating,
        visit_date=body.visit_date,
        menu_photo_url=body.menu_photo_url,
    )
    return {
        "visit_id": str(visit_id),
        "recipes_pending": workflow.recipe_generation is not None,
    }


@router.delete("")
async def cancel_workflow(
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Discard the draft visit and forget the owner's workflow."""
    container: AppContainer = request.app.state.container
    workflow = container.workflows.get(owner_id)
    workflow.cancel()
    container.workflows.discard(owner_id)
    return workflow.snapshot()
