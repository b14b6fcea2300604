"""State machine for capturing a restaurant visit from a menu photo."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from uuid import UUID

from dish_discovery.domain.menus import DishCandidate
from dish_discovery.domain.recipes import RecipeRequest
from dish_discovery.domain.visits import NewDish, NewVisit
from dish_discovery.errors import (
    DishDiscoveryError,
    ExtractionFault,
    InputValidationError,
    WorkflowStateError,
)
from dish_discovery.services.recipes import RecipeBatchResult, RecipeService
from dish_discovery.services.vision import MenuVisionService
from dish_discovery.services.visits import VisitService, validate_rating

logger = logging.getLogger(__name__)


class WorkflowState(StrEnum):
    """Steps of the visit capture flow."""

    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    ANALYZING = "ANALYZING"
    SELECTING = "SELECTING"
    RATING = "RATING"
    SAVING = "SAVING"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SelectedDish:
    """A candidate carried forward, with an id stable for this draft."""

    id: str
    candidate: DishCandidate


@dataclass(frozen=True)
class DishRating:
    """User rating for a selected dish."""

    rating: int
    notes: str | None = None
    want_to_recreate: bool = False


@dataclass
class VisitWorkflow:
    """Drives capture, analysis, selection, rating and saving of one visit.

    All entered data (photo, candidates, selection, ratings) is kept in memory
    across a failed analysis or save so the user can retry the same step.
    Recipe generation for dishes marked "want to recreate" runs as a detached
    task exposed through ``recipe_generation``.
    """

    owner_id: UUID
    vision_service: MenuVisionService
    visit_service: VisitService
    recipe_service: RecipeService
    state: WorkflowState = WorkflowState.IDLE
    failed_step: WorkflowState | None = None
    error_message: str | None = None
    photo: bytes | str | None = None
    candidates: list[DishCandidate] = field(default_factory=list)
    selected: list[SelectedDish] = field(default_factory=list)
    ratings: dict[str, DishRating] = field(default_factory=dict)
    last_visit_id: UUID | None = None
    recipe_generation: asyncio.Task[RecipeBatchResult] | None = None

    def start(self) -> None:
        """Begin a new visit, discarding any draft."""
        self._reset()
        self.state = WorkflowState.CAPTURING

    def capture(self, photo: bytes | str) -> None:
        """Store the menu photo and move on to analysis."""
        self._require(
            WorkflowState.IDLE,
            WorkflowState.CAPTURING,
            WorkflowState.ANALYZING,
            failed=WorkflowState.ANALYZING,
        )
        if not photo or (isinstance(photo, str) and not photo.strip()):
            raise InputValidationError("No image provided")
        self._reset()
        self.photo = photo
        self.state = WorkflowState.ANALYZING

    async def analyze(self) -> list[DishCandidate]:
        """Run menu extraction on the captured photo.

        Zero dishes is a successful result. On failure the workflow moves to
        FAILED and ``analyze`` may be called again without re-capturing.
        """
        self._require(WorkflowState.ANALYZING, failed=WorkflowState.ANALYZING)
        if self.photo is None:
            raise WorkflowStateError("Capture a menu photo first")
        try:
            candidates = await self.vision_service.extract(self.photo)
        except ExtractionFault as exc:
            self._fail(WorkflowState.ANALYZING, exc)
            raise
        self._clear_failure()
        self.candidates = list(candidates)
        self.selected = []
        self.ratings = {}
        self.state = WorkflowState.SELECTING
        return self.candidates

    def select(self, indices: Sequence[int]) -> list[SelectedDish]:
        """Carry the chosen candidates forward for rating.

        Re-selecting from RATING keeps ratings of dishes still selected.
        """
        self._require(WorkflowState.SELECTING, WorkflowState.RATING)
        if not indices:
            raise InputValidationError("Select at least one dish")
        if len(set(indices)) != len(indices):
            raise InputValidationError("Each dish can only be selected once")
        for index in indices:
            if isinstance(index, bool) or not 0 <= index < len(self.candidates):
                raise InputValidationError(f"Unknown dish index: {index}")
        self.selected = [
            SelectedDish(id=_dish_key(index), candidate=self.candidates[index])
            for index in sorted(indices)
        ]
        keep = {dish.id for dish in self.selected}
        self.ratings = {
            key: rating for key, rating in self.ratings.items() if key in keep
        }
        self.state = WorkflowState.RATING
        return self.selected

    def rate(
        self,
        dish_id: str,
        rating: int,
        notes: str | None = None,
        want_to_recreate: bool = False,
    ) -> DishRating:
        """Set or replace the rating for one selected dish."""
        self._require(WorkflowState.RATING, failed=WorkflowState.SAVING)
        if dish_id not in {dish.id for dish in self.selected}:
            raise InputValidationError(f"Unknown dish: {dish_id}")
        entry = DishRating(
            rating=validate_rating(rating),
            notes=(notes or "").strip() or None,
            want_to_recreate=want_to_recreate,
        )
        self.ratings[dish_id] = entry
        return entry

    def missing_ratings(self) -> list[str]:
        """Return ids of selected dishes that have no rating yet."""
        return [dish.id for dish in self.selected if dish.id not in self.ratings]

    @property
    def can_complete(self) -> bool:
        """True when every selected dish is rated."""
        return bool(self.selected) and not self.missing_ratings()

    async def complete_visit(  # noqa: PLR0913
        self,
        restaurant_name: str,
        location: str | None = None,
        notes: str | None = None,
        overall_rating: int | None = None,
        visit_date: date | None = None,
        menu_photo_url: str | None = None,
    ) -> UUID:
        """Persist the visit and its dishes, then kick off recipe generation."""
        self._require(WorkflowState.RATING, failed=WorkflowState.SAVING)
        name = (restaurant_name or "").strip()
        if not name:
            raise InputValidationError("Restaurant name is required")
        missing = self.missing_ratings()
        if missing:
            raise InputValidationError(
                f"Rate every dish before saving (missing: {', '.join(missing)})"
            )
        if overall_rating is not None:
            validate_rating(overall_rating)

        visit = NewVisit(
            restaurant_name=name,
            visit_date=visit_date or date.today(),
            location=(location or "").strip() or None,
            menu_photo_url=menu_photo_url,
            notes=(notes or "").strip() or None,
            overall_rating=overall_rating,
        )
        dishes = self._build_dishes()
        self.state = WorkflowState.SAVING
        try:
            visit_id = self.visit_service.create_visit_with_dishes(
                self.owner_id, visit, dishes
            )
        except DishDiscoveryError as exc:
            self._fail(WorkflowState.SAVING, exc)
            raise

        self.last_visit_id = visit_id
        logger.info(
            "Visit saved", extra={"visit_id": str(visit_id), "dishes": len(dishes)}
        )
        self.recipe_generation = self._schedule_recipes(visit_id, name, dishes)
        self._reset()
        self.state = WorkflowState.IDLE
        return visit_id

    def cancel(self) -> None:
        """Drop the draft and return to IDLE."""
        self._reset()
        self.state = WorkflowState.IDLE

    def snapshot(self) -> dict[str, object]:
        """Return a serialisable view of the draft."""
        return {
            "state": self.state.value,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error_message,
            "has_photo": self.photo is not None,
            "candidates": [
                candidate.model_dump() for candidate in self.candidates
            ],
            "selected": [
                {"id": dish.id, **dish.candidate.model_dump()}
                for dish in self.selected
            ],
            "ratings": {
                key: {
                    "rating": value.rating,
                    "notes": value.notes,
                    "want_to_recreate": value.want_to_recreate,
                }
                for key, value in self.ratings.items()
            },
            "can_complete": self.can_complete,
            "last_visit_id": str(self.last_visit_id) if self.last_visit_id else None,
        }

    def _build_dishes(self) -> list[NewDish]:
        dishes = []
        for dish in self.selected:
            rating = self.ratings[dish.id]
            dishes.append(
                NewDish(
                    name=dish.candidate.name,
                    description=dish.candidate.description,
                    price=dish.candidate.price,
                    category=dish.candidate.category,
                    rating=rating.rating,
                    notes=rating.notes,
                    want_to_recreate=rating.want_to_recreate,
                    ordered=True,
                )
            )
        return dishes

    def _schedule_recipes(
        self, visit_id: UUID, restaurant_name: str, dishes: list[NewDish]
    ) -> asyncio.Task[RecipeBatchResult] | None:
        requests = [
            RecipeRequest(
                dish_name=dish.name,
                dish_description=dish.description,
                restaurant_name=restaurant_name,
            )
            for dish in dishes
            if dish.want_to_recreate
        ]
        if not requests:
            return None
        return self.recipe_service.start_for_visit(
            self.owner_id, visit_id, restaurant_name, requests
        )

    def _require(
        self, *states: WorkflowState, failed: WorkflowState | None = None
    ) -> None:
        if self.state in states:
            return
        if (
            failed is not None
            and self.state == WorkflowState.FAILED
            and self.failed_step == failed
        ):
            return
        raise WorkflowStateError(f"Not allowed while {self.state.value.lower()}")

    def _fail(self, step: WorkflowState, exc: DishDiscoveryError) -> None:
        self.state = WorkflowState.FAILED
        self.failed_step = step
        self.error_message = exc.message

    def _clear_failure(self) -> None:
        self.failed_step = None
        self.error_message = None

    def _reset(self) -> None:
        self._clear_failure()
        self.photo = None
        self.candidates = []
        self.selected = []
        self.ratings = {}


@dataclass
class WorkflowRegistry:
    """Keeps one in-memory workflow per owner."""

    factory: Callable[[UUID], VisitWorkflow]
    _workflows: dict[UUID, VisitWorkflow] = field(default_factory=dict)

    def get(self, owner_id: UUID) -> VisitWorkflow:
        """Return the owner's workflow, creating it on first use."""
        workflow = self._workflows.get(owner_id)
        if workflow is None:
            workflow = self.factory(owner_id)
            self._workflows[owner_id] = workflow
        return workflow

    def discard(self, owner_id: UUID) -> None:
        """Forget the owner's workflow."""
        self._workflows.pop(owner_id, None)


def _dish_key(index: int) -> str:
    return f"dish-{index}"
