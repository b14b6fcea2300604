"""Recipe generation and persistence services."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, get_args
from uuid import UUID

from pydantic import ValidationError

from dish_discovery.domain.recipes import (
    Difficulty,
    GeneratedRecipe,
    Recipe,
    RecipeDraft,
    RecipeRequest,
)
from dish_discovery.errors import (
    DishDiscoveryError,
    GenerationFault,
    InputValidationError,
    NotFoundError,
    PersistenceFault,
)
from dish_discovery.services.vision import StructuredOutputClient
from dish_discovery.services.visits import VisitService

logger = logging.getLogger(__name__)

DIFFICULTIES = frozenset(get_args(Difficulty))

RECIPE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "ingredients": {"type": "array", "items": {"type": "string"}},
        "instructions": {"type": "array", "items": {"type": "string"}},
        "cook_time": {"type": "string"},
        "servings": {"type": "string"},
        "difficulty": {"type": "string", "enum": ["easy", "medium", "hard"]},
        "cuisine_type": {"type": "string"},
    },
    "required": [
        "title",
        "ingredients",
        "instructions",
        "cook_time",
        "servings",
        "difficulty",
        "cuisine_type",
    ],
    "additionalProperties": False,
}


class RecipeRepository(Protocol):
    """Persistence interface for saved recipes, scoped to an owner."""

    def upsert_recipe(self, owner_id: UUID, draft: RecipeDraft) -> Recipe:
        """Insert or update a recipe and return the stored row."""

    def get_recipe(self, owner_id: UUID, recipe_id: UUID) -> Recipe | None:
        """Return a recipe, if owned."""

    def list_recipes(self, owner_id: UUID) -> list[Recipe]:
        """Return recipes, most recently saved first."""

    def delete_recipe(self, owner_id: UUID, recipe_id: UUID) -> None:
        """Delete a recipe."""


@dataclass
class RecipeGenerator:
    """Prompts the LLM for a home-cook recipe and validates the result."""

    client: StructuredOutputClient
    model: str
    store: bool
    timeout_seconds: float = 20.0

    async def generate(self, request: RecipeRequest) -> GeneratedRecipe:
        """Generate a recipe for one dish."""
        if not request.dish_name.strip():
            raise InputValidationError("Dish name is required")
        try:
            raw = await self.client.generate(
                model=self.model,
                store=self.store,
                prompt=build_recipe_prompt(request),
                schema=RECIPE_SCHEMA,
                schema_name="recipe",
                temperature=0.3,
                timeout=self.timeout_seconds,
            )
            return GeneratedRecipe.model_validate(raw)
        except ValidationError as exc:
            raise GenerationFault(
                "Recipe generator returned an unreadable result", cause=exc
            ) from exc
        except Exception as exc:
            raise GenerationFault("Failed to generate recipe", cause=exc) from exc


@dataclass(frozen=True)
class RecipeBatchResult:
    """Outcome of generating recipes for several dishes of one visit."""

    success: bool
    recipes_generated: int
    recipes: list[Recipe] = field(default_factory=list)


@dataclass
class RecipeService:
    """Generates recipes and stores them under the requesting user."""

    generator: RecipeGenerator
    repository: RecipeRepository
    visit_service: VisitService
    _pending: set[asyncio.Task[RecipeBatchResult]] = field(
        default_factory=set, repr=False
    )

    async def generate_and_save(
        self,
        owner_id: UUID,
        request: RecipeRequest,
        linked_dish_id: UUID | None = None,
    ) -> Recipe:
        """Generate one recipe and persist it."""
        generated = await self.generator.generate(request)
        draft = RecipeDraft.from_generated(generated, linked_dish_id)
        return self.save(owner_id, draft)

    async def generate_for_visit(
        self,
        owner_id: UUID,
        visit_id: UUID,
        restaurant_name: str,
        dishes: list[RecipeRequest],
    ) -> RecipeBatchResult:
        """Generate recipes concurrently; failed dishes are logged and skipped."""
        results = await asyncio.gather(
            *(
                self._generate_linked(owner_id, visit_id, restaurant_name, dish)
                for dish in dishes
            )
        )
        recipes = [recipe for recipe in results if recipe is not None]
        logger.info(
            "Generated recipes for visit",
            extra={
                "visit_id": str(visit_id),
                "requested": len(dishes),
                "generated": len(recipes),
            },
        )
        return RecipeBatchResult(
            success=True, recipes_generated=len(recipes), recipes=recipes
        )

    def start_for_visit(
        self,
        owner_id: UUID,
        visit_id: UUID,
        restaurant_name: str,
        dishes: list[RecipeRequest],
    ) -> asyncio.Task[RecipeBatchResult]:
        """Run ``generate_for_visit`` in the background.

        The service holds the task until it finishes, so callers may drop it.
        """
        task = asyncio.create_task(
            self.generate_for_visit(owner_id, visit_id, restaurant_name, dishes)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(_log_batch_outcome)
        return task

    @property
    def pending_batches(self) -> int:
        """Number of background batches still running."""
        return len(self._pending)

    async def wait_for_pending(self) -> None:
        """Wait for every background batch to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def save(self, owner_id: UUID, draft: RecipeDraft) -> Recipe:
        """Persist a recipe draft."""
        if not draft.title.strip():
            raise InputValidationError("Recipe title is required")
        if draft.difficulty is not None and draft.difficulty not in DIFFICULTIES:
            raise InputValidationError("Difficulty must be easy, medium or hard")
        try:
            return self.repository.upsert_recipe(owner_id, draft)
        except DishDiscoveryError:
            raise
        except Exception as exc:
            raise PersistenceFault("Failed to save recipe", cause=exc) from exc

    def list_recipes(self, owner_id: UUID) -> list[Recipe]:
        """Return the owner's saved recipes."""
        return self.repository.list_recipes(owner_id)

    def get_recipe(self, owner_id: UUID, recipe_id: UUID) -> Recipe:
        """Return a saved recipe or raise NotFoundError."""
        recipe = self.repository.get_recipe(owner_id, recipe_id)
        if recipe is None:
            raise NotFoundError("Recipe not found")
        return recipe

    def delete_recipe(self, owner_id: UUID, recipe_id: UUID) -> None:
        """Delete a saved recipe outright."""
        try:
            self.repository.delete_recipe(owner_id, recipe_id)
        except DishDiscoveryError:
            raise
        except Exception as exc:
            raise PersistenceFault("Failed to delete recipe", cause=exc) from exc

    async def _generate_linked(
        self,
        owner_id: UUID,
        visit_id: UUID,
        restaurant_name: str,
        dish: RecipeRequest,
    ) -> Recipe | None:
        request = RecipeRequest(
            dish_name=dish.dish_name,
            dish_description=dish.dish_description,
            restaurant_name=dish.restaurant_name or restaurant_name,
        )
        try:
            generated = await self.generator.generate(request)
            linked_dish_id = self._resolve_dish_id(owner_id, visit_id, dish.dish_name)
            return self.save(
                owner_id, RecipeDraft.from_generated(generated, linked_dish_id)
            )
        except Exception:
            logger.exception(
                "Failed to generate recipe",
                extra={"visit_id": str(visit_id), "dish_name": dish.dish_name},
            )
            return None

    def _resolve_dish_id(
        self, owner_id: UUID, visit_id: UUID, dish_name: str
    ) -> UUID | None:
        try:
            return self.visit_service.find_dish_id(owner_id, visit_id, dish_name)
        except Exception:
            logger.warning(
                "Could not resolve dish for recipe link",
                extra={"visit_id": str(visit_id), "dish_name": dish_name},
            )
            return None


def build_recipe_prompt(request: RecipeRequest) -> str:
    """Build the recipe generation prompt for a dish."""
    subject = f'"{request.dish_name.strip()}"'
    if request.dish_description:
        subject = f"{subject} ({request.dish_description.strip()})"
    if request.restaurant_name:
        subject = f"{subject} from {request.restaurant_name.strip()}"
    return (
        f"Create a detailed home recipe to recreate {subject}.\n\n"
        "Provide a complete recipe that a home cook can follow, including:\n"
        "- Accurate ingredient list with measurements\n"
        "- Clear step-by-step instructions\n"
        "- Cooking time and difficulty level\n"
        "- Number of servings\n"
        "- Cuisine type\n\n"
        "Make it authentic and achievable for home cooking while capturing the "
        "essence of the restaurant dish."
    )


def _log_batch_outcome(task: asyncio.Task[RecipeBatchResult]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Recipe generation task failed", exc_info=exc)
