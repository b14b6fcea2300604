"""Recipe domain models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

Difficulty = Literal["easy", "medium", "hard"]
SourceType = Literal["ai", "web"]


class GeneratedRecipe(BaseModel):
    """Structured output for recipe generation."""

    title: str
    ingredients: list[str]
    instructions: list[str]
    cook_time: str
    servings: str
    difficulty: Difficulty
    cuisine_type: str


@dataclass(frozen=True)
class RecipeRequest:
    """Dish details sent to the recipe generator."""

    dish_name: str
    dish_description: str | None = None
    restaurant_name: str | None = None


@dataclass(frozen=True)
class Recipe:
    """Recipe saved under a user."""

    id: UUID
    user_id: UUID
    title: str
    ingredients: list[str]
    instructions: list[str]
    cook_time: str | None
    servings: str | None
    difficulty: Difficulty | None
    cuisine_type: str | None
    source_type: str
    source_url: str | None
    image_url: str | None
    linked_dish_id: UUID | None
    saved_at: datetime | None


@dataclass(frozen=True)
class RecipeDraft:
    """Recipe fields prior to persistence."""

    title: str
    ingredients: list[str]
    instructions: list[str]
    cook_time: str | None = None
    servings: str | None = None
    difficulty: Difficulty | None = None
    cuisine_type: str | None = None
    source_type: SourceType = "ai"
    source_url: str | None = None
    image_url: str | None = None
    linked_dish_id: UUID | None = None
    id: UUID | None = None

    @classmethod
    def from_generated(
        cls, generated: GeneratedRecipe, linked_dish_id: UUID | None = None
    ) -> "RecipeDraft":
        """Build a draft from an LLM-generated recipe."""
        return cls(
            title=generated.title,
            ingredients=list(generated.ingredients),
            instructions=list(generated.instructions),
            cook_time=generated.cook_time,
            servings=generated.servings,
            difficulty=generated.difficulty,
            cuisine_type=generated.cuisine_type,
            source_type="ai",
            linked_dish_id=linked_dish_id,
        )
