"""Menu analysis, recipe generation and discovery endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from dish_discovery.api.auth import require_owner
from dish_discovery.api.models import (  # noqa: TC001
    AnalyzeMenuRequest,
    GenerateRecipeRequest,
    GenerateRecipesRequest,
    RecipeBody,
)
from dish_discovery.api.payloads import recipe_payload, recreate_payload
from dish_discovery.domain.recipes import RecipeDraft, RecipeRequest
from dish_discovery.errors import InputValidationError
from dish_discovery.services.discovery import filter_recipes

if TYPE_CHECKING:
    from dish_discovery.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["recipes"])


@router.post("/analyze-menu")
async def analyze_menu(
    body: AnalyzeMenuRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Extract the dishes on a menu photo without starting a visit."""
    container: AppContainer = request.app.state.container
    if not body.image:
        raise InputValidationError("No image provided")
    dishes = await container.vision_service.extract(body.image)
    logger.info(
        "Analyzed menu", extra={"user_id": str(owner_id), "dishes": len(dishes)}
    )
    return {"dishes": [dish.model_dump() for dish in dishes]}


@router.post("/generate-recipe")
async def generate_recipe(
    body: GenerateRecipeRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    recipe = await container.recipe_service.generate_and_save(
        owner_id,
        RecipeRequest(
            dish_name=body.dish_name,
            dish_description=body.dish_description,
            restaurant_name=body.restaurant_name,
        ),
    )
    return {"recipe": recipe_payload(recipe)}


@router.post("/generate-recipes")
async def generate_recipes(
    body: GenerateRecipesRequest,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Generate recipes for several dishes of a visit the caller owns."""
    container: AppContainer = request.app.state.container
    container.visit_service.get_visit(owner_id, body.visit_id)
    result = await container.recipe_service.generate_for_visit(
        owner_id,
        body.visit_id,
        body.restaurant_name,
        [
            RecipeRequest(dish_name=dish.name, dish_description=dish.description)
            for dish in body.dishes
        ],
    )
    return {
        "success": result.success,
        "recipesGenerated": result.recipes_generated,
        "recipes": [recipe_payload(recipe) for recipe in result.recipes],
    }


@router.get("/recipes")
async def list_recipes(
    request: Request,
    q: str | None = None,
    difficulty: str | None = None,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    recipes = filter_recipes(
        container.recipe_service.list_recipes(owner_id), q, difficulty
    )
    return {"recipes": [recipe_payload(recipe) for recipe in recipes]}


@router.post("/recipes/toggle-saved")
async def toggle_saved_recipe(
    body: RecipeBody,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Bookmark a recipe, or remove it when it is already saved."""
    container: AppContainer = request.app.state.container
    draft = RecipeDraft(
        title=body.title,
        ingredients=body.ingredients,
        instructions=body.instructions,
        cook_time=body.cook_time,
        servings=body.servings,
        difficulty=body.difficulty,
        cuisine_type=body.cuisine_type,
        source_type=body.source_type,
        source_url=body.source_url,
        image_url=body.image_url,
        linked_dish_id=body.linked_dish_id,
        id=body.id,
    )
    saved = container.discovery_service.toggle_saved(owner_id, draft)
    if saved is None:
        return {"saved": False, "recipe": None}
    return {"saved": True, "recipe": recipe_payload(saved)}


@router.get("/recipes/{recipe_id}")
async def get_recipe(
    recipe_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    recipe = container.recipe_service.get_recipe(owner_id, recipe_id)
    return {"recipe": recipe_payload(recipe)}


@router.delete("/recipes/{recipe_id}")
async def delete_recipe(
    recipe_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, str]:
    container: AppContainer = request.app.state.container
    container.recipe_service.delete_recipe(owner_id, recipe_id)
    return {"status": "ok"}


@router.get("/discovery")
async def discovery(
    request: Request,
    q: str | None = None,
    difficulty: str | None = None,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    """Saved recipes and dishes to recreate, filtered by the same query."""
    container: AppContainer = request.app.state.container
    view = container.discovery_service.load(owner_id, q, difficulty)
    return {
        "recipes": [recipe_payload(recipe) for recipe in view.recipes],
        "dishes": [recreate_payload(entry) for entry in view.dishes],
    }


@router.post("/discovery/dishes/{dish_id}/recipe")
async def generate_for_dish(
    dish_id: UUID,
    request: Request,
    owner_id: UUID = Depends(require_owner),
) -> dict[str, object]:
    container: AppContainer = request.app.state.container
    recipe = await container.discovery_service.generate_for_dish(owner_id, dish_id)
    return {"recipe": recipe_payload(recipe)}
