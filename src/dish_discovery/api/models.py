"""Pydantic models for API request bodies."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dish_discovery.domain.recipes import Difficulty, SourceType


class _RequestModel(BaseModel):
    """Accepts both the camelCase wire names and field names."""

    model_config = ConfigDict(populate_by_name=True)


class AnalyzeMenuRequest(_RequestModel):
    """Menu photo as base64 or a data URL."""

    image: str | None = None


class GenerateRecipeRequest(_RequestModel):
    """Single recipe generation payload."""

    dish_name: str = Field(alias="dishName")
    dish_description: str | None = Field(default=None, alias="dishDescription")
    restaurant_name: str | None = Field(default=None, alias="restaurantName")


class BatchDish(_RequestModel):
    """Dish entry in a batch generation payload."""

    name: str
    description: str | None = None


class GenerateRecipesRequest(_RequestModel):
    """Batch recipe generation payload for one visit."""

    visit_id: UUID = Field(alias="visitId")
    restaurant_name: str = Field(alias="restaurantName")
    dishes: list[BatchDish]


class CaptureRequest(_RequestModel):
    """Captured menu photo."""

    image: str


class SelectRequest(_RequestModel):
    """Indices of extracted dishes to carry forward."""

    indices: list[int]


class RateRequest(_RequestModel):
    """Rating for one selected dish."""

    dish_id: str = Field(alias="dishId")
    rating: int
    notes: str | None = None
    want_to_recreate: bool = Field(default=False, alias="wantToRecreate")


class CompleteVisitRequest(_RequestModel):
    """Visit details entered when saving."""

    restaurant_name: str = Field(alias="restaurantName")
    location: str | None = None
    notes: str | None = None
    overall_rating: int | None = Field(default=None, alias="overallRating")
    visit_date: date | None = Field(default=None, alias="visitDate")
    menu_photo_url: str | None = Field(default=None, alias="menuPhotoUrl")


class VisitUpdateRequest(_RequestModel):
    """Partial visit update."""

    restaurant_name: str | None = Field(default=None, alias="restaurantName")
    location: str | None = None
    visit_date: date | None = Field(default=None, alias="visitDate")
    menu_photo_url: str | None = Field(default=None, alias="menuPhotoUrl")
    notes: str | None = None
    overall_rating: int | None = Field(default=None, alias="overallRating")


class DishUpdateRequest(_RequestModel):
    """Partial dish update."""

    name: str | None = None
    description: str | None = None
    price: str | None = None
    category: str | None = None
    rating: int | None = None
    notes: str | None = None
    want_to_recreate: bool | None = Field(default=None, alias="wantToRecreate")


class RecipeBody(_RequestModel):
    """Recipe as shown in discovery, used for bookmarking."""

    id: UUID | None = None
    title: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    cook_time: str | None = None
    servings: str | None = None
    difficulty: Difficulty | None = None
    cuisine_type: str | None = None
    source_type: SourceType = "ai"
    source_url: str | None = None
    image_url: str | None = None
    linked_dish_id: UUID | None = None
