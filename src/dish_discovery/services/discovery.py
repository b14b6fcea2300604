"""Recipe discovery: saved recipes and dishes to recreate."""

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from dish_discovery.domain.recipes import Recipe, RecipeDraft, RecipeRequest
from dish_discovery.domain.visits import RecreateDish
from dish_discovery.errors import NotFoundError
from dish_discovery.services.recipes import RecipeService
from dish_discovery.services.visits import VisitService


@dataclass(frozen=True)
class DiscoveryView:
    """The two independently filtered discovery lists."""

    recipes: list[Recipe]
    dishes: list[RecreateDish]


@dataclass
class RecipeDiscoveryService:
    """Browse, generate and bookmark recipes for dishes worth recreating."""

    recipe_service: RecipeService
    visit_service: VisitService

    def load(
        self,
        owner_id: UUID,
        query: str | None = None,
        difficulty: str | None = None,
    ) -> DiscoveryView:
        """Return filtered saved recipes and dishes flagged for recreation."""
        recipes = self.recipe_service.list_recipes(owner_id)
        dishes = self.visit_service.dishes_to_recreate(owner_id)
        return DiscoveryView(
            recipes=filter_recipes(recipes, query, difficulty),
            dishes=filter_dishes(dishes, query),
        )

    async def generate_for_dish(self, owner_id: UUID, dish_id: UUID) -> Recipe:
        """Generate and save a recipe for one listed dish."""
        for entry in self.visit_service.dishes_to_recreate(owner_id):
            if entry.dish.id == dish_id:
                request = RecipeRequest(
                    dish_name=entry.dish.name,
                    dish_description=entry.dish.description,
                    restaurant_name=entry.restaurant_name,
                )
                return await self.recipe_service.generate_and_save(
                    owner_id, request, linked_dish_id=entry.dish.id
                )
        raise NotFoundError("Dish is not marked to recreate")

    def toggle_saved(self, owner_id: UUID, draft: RecipeDraft) -> Recipe | None:
        """Save the recipe, or delete it when it is already saved.

        Returns the saved recipe, or None when it was removed.
        """
        if draft.id is not None:
            try:
                existing = self.recipe_service.get_recipe(owner_id, draft.id)
            except NotFoundError:
                existing = None
            if existing is not None:
                self.recipe_service.delete_recipe(owner_id, existing.id)
                return None
        return self.recipe_service.save(owner_id, draft)


def filter_recipes(
    recipes: Sequence[Recipe],
    query: str | None,
    difficulty: str | None = None,
) -> list[Recipe]:
    """Case-insensitive match on title, cuisine or any ingredient."""
    needle = (query or "").strip().lower()
    level = (difficulty or "").strip().lower()
    matches = []
    for recipe in recipes:
        if level and (recipe.difficulty or "").lower() != level:
            continue
        if needle and not _recipe_matches(recipe, needle):
            continue
        matches.append(recipe)
    return matches


def filter_dishes(
    dishes: Sequence[RecreateDish], query: str | None
) -> list[RecreateDish]:
    """Case-insensitive match on dish name or description."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(dishes)
    return [
        entry
        for entry in dishes
        if needle in entry.dish.name.lower()
        or needle in (entry.dish.description or "").lower()
    ]


def _recipe_matches(recipe: Recipe, needle: str) -> bool:
    if needle in recipe.title.lower():
        return True
    if needle in (recipe.cuisine_type or "").lower():
        return True
    return any(needle in ingredient.lower() for ingredient in recipe.ingredients)
