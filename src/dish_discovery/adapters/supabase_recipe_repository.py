"""Supabase repository for saved recipes."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from dish_discovery.domain.recipes import Recipe, RecipeDraft
from dish_discovery.errors import AuthorizationError, NotFoundError, PersistenceFault
from dish_discovery.services.recipes import RecipeRepository

_RECIPES = "recipes"


@dataclass
class SupabaseRecipeRepository(RecipeRepository):
    """Supabase-backed repository for user recipes."""

    client: Client

    def upsert_recipe(self, owner_id: UUID, draft: RecipeDraft) -> Recipe:
        """Insert a new recipe or update an owned one."""
        now = datetime.now(tz=UTC).isoformat()
        payload: dict[str, object] = {
            "user_id": str(owner_id),
            "title": draft.title,
            "ingredients": list(draft.ingredients),
            "instructions": list(draft.instructions),
            "cook_time": draft.cook_time,
            "servings": draft.servings,
            "difficulty": draft.difficulty,
            "cuisine_type": draft.cuisine_type,
            "source_type": draft.source_type,
            "source_url": draft.source_url,
            "image_url": draft.image_url,
            "linked_dish_id": str(draft.linked_dish_id)
            if draft.linked_dish_id
            else None,
            "saved_at": now,
            "updated_at": now,
        }
        if draft.id is not None:
            self.get_recipe(owner_id, draft.id)
            payload["id"] = str(draft.id)
        response = self.client.table(_RECIPES).upsert(payload).execute()
        if not response.data:
            raise PersistenceFault("Failed to save recipe")
        return _parse_recipe(response.data[0])

    def get_recipe(self, owner_id: UUID, recipe_id: UUID) -> Recipe | None:
        """Return a recipe; another user's recipe is an authorization error."""
        response = (
            self.client.table(_RECIPES)
            .select("*")
            .eq("id", str(recipe_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        if str(row.get("user_id")) != str(owner_id):
            raise AuthorizationError("Recipe belongs to another user")
        return _parse_recipe(row)

    def list_recipes(self, owner_id: UUID) -> list[Recipe]:
        """Return recipes for a user, most recently saved first."""
        response = (
            self.client.table(_RECIPES)
            .select("*")
            .eq("user_id", str(owner_id))
            .order("saved_at", desc=True)
            .execute()
        )
        return [_parse_recipe(row) for row in response.data or []]

    def delete_recipe(self, owner_id: UUID, recipe_id: UUID) -> None:
        """Delete a recipe row."""
        if self.get_recipe(owner_id, recipe_id) is None:
            raise NotFoundError("Recipe not found")
        self.client.table(_RECIPES).delete().eq("id", str(recipe_id)).eq(
            "user_id", str(owner_id)
        ).execute()


def _parse_recipe(row: dict[str, object]) -> Recipe:
    saved_at_raw = row.get("saved_at")
    return Recipe(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        title=str(row.get("title", "")),
        ingredients=[str(item) for item in row.get("ingredients") or []],
        instructions=[str(step) for step in row.get("instructions") or []],
        cook_time=row.get("cook_time"),
        servings=str(row["servings"]) if row.get("servings") is not None else None,
        difficulty=row.get("difficulty"),
        cuisine_type=row.get("cuisine_type"),
        source_type=str(row.get("source_type") or "ai"),
        source_url=row.get("source_url"),
        image_url=row.get("image_url"),
        linked_dish_id=UUID(str(row["linked_dish_id"]))
        if row.get("linked_dish_id")
        else None,
        saved_at=datetime.fromisoformat(saved_at_raw)
        if isinstance(saved_at_raw, str) and saved_at_raw
        else None,
    )
