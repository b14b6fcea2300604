"""Response payload builders."""

from dish_discovery.domain.recipes import Recipe
from dish_discovery.domain.stats import VisitStats
from dish_discovery.domain.visits import Dish, RecreateDish, RestaurantVisit


def visit_payload(visit: RestaurantVisit) -> dict[str, object]:
    return {
        "id": str(visit.id),
        "restaurant_name": visit.restaurant_name,
        "location": visit.location,
        "visit_date": visit.visit_date.isoformat(),
        "menu_photo_url": visit.menu_photo_url,
        "notes": visit.notes,
        "overall_rating": visit.overall_rating,
        "average_rating": round(visit.average_rating, 2),
        "dishes": [dish_payload(dish) for dish in visit.dishes],
    }


def dish_payload(dish: Dish) -> dict[str, object]:
    return {
        "id": str(dish.id),
        "visit_id": str(dish.visit_id),
        "name": dish.name,
        "description": dish.description,
        "price": dish.price,
        "category": dish.category,
        "ordered": dish.ordered,
        "rating": dish.rating,
        "notes": dish.notes,
        "want_to_recreate": dish.want_to_recreate,
    }


def recreate_payload(entry: RecreateDish) -> dict[str, object]:
    return {
        **dish_payload(entry.dish),
        "restaurant_name": entry.restaurant_name,
        "visit_date": entry.visit_date.isoformat(),
    }


def recipe_payload(recipe: Recipe) -> dict[str, object]:
    return {
        "id": str(recipe.id),
        "title": recipe.title,
        "ingredients": recipe.ingredients,
        "instructions": recipe.instructions,
        "cook_time": recipe.cook_time,
        "servings": recipe.servings,
        "difficulty": recipe.difficulty,
        "cuisine_type": recipe.cuisine_type,
        "source_type": recipe.source_type,
        "source_url": recipe.source_url,
        "image_url": recipe.image_url,
        "linked_dish_id": str(recipe.linked_dish_id) if recipe.linked_dish_id else None,
        "saved_at": recipe.saved_at.isoformat() if recipe.saved_at else None,
    }


def stats_payload(stats: VisitStats) -> dict[str, object]:
    return {
        "total_visits": stats.total_visits,
        "total_dishes": stats.total_dishes,
        "average_rating": round(stats.average_rating, 2),
        "favorite_restaurant": stats.favorite_restaurant,
    }
