"""Visit persistence service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from dish_discovery.domain.visits import (
    MAX_RATING,
    MIN_RATING,
    Dish,
    NewDish,
    NewVisit,
    RecreateDish,
    RestaurantVisit,
)
from dish_discovery.errors import (
    DishDiscoveryError,
    InputValidationError,
    NotFoundError,
    PersistenceFault,
)
from dish_discovery.services.cache import Cache

logger = logging.getLogger(__name__)

VISIT_FIELDS = frozenset(
    {
        "restaurant_name",
        "location",
        "visit_date",
        "menu_photo_url",
        "notes",
        "overall_rating",
    }
)
DISH_FIELDS = frozenset(
    {"name", "description", "price", "category", "rating", "notes", "want_to_recreate"}
)
NON_NULL_VISIT_FIELDS = frozenset({"restaurant_name", "visit_date"})
NON_NULL_DISH_FIELDS = frozenset({"name", "want_to_recreate"})


class VisitRepository(Protocol):
    """Persistence interface for visits and dishes, scoped to an owner."""

    def create_visit(self, owner_id: UUID, visit: NewVisit) -> UUID:
        """Create a visit row and return its id."""

    def create_dishes(
        self, owner_id: UUID, visit_id: UUID, dishes: list[NewDish]
    ) -> None:
        """Batch insert dish rows for a visit."""

    def list_visits(self, owner_id: UUID) -> list[RestaurantVisit]:
        """Return visits with dishes, newest visit date first."""

    def search_visits(self, owner_id: UUID, query: str) -> list[RestaurantVisit]:
        """Return visits matching name, location or any dish name."""

    def get_visit(self, owner_id: UUID, visit_id: UUID) -> RestaurantVisit | None:
        """Return a visit with dishes, if owned."""

    def get_dish(self, owner_id: UUID, dish_id: UUID) -> Dish | None:
        """Return a dish, if its visit is owned."""

    def find_dish_id(self, owner_id: UUID, visit_id: UUID, name: str) -> UUID | None:
        """Resolve a dish id by visit and dish name."""

    def update_visit(
        self, owner_id: UUID, visit_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update visit fields."""

    def update_dish(
        self, owner_id: UUID, dish_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update dish fields."""

    def delete_dish(self, owner_id: UUID, dish_id: UUID) -> None:
        """Delete a dish."""

    def delete_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        """Delete a visit's dishes, then the visit."""


@dataclass
class VisitService:
    """Application service for visit reads and writes.

    The repository is the source of truth. Visit lists are cached per owner and
    the cache entry is dropped after every successful write.
    """

    repository: VisitRepository
    cache: Cache
    cache_ttl_seconds: int = 300

    def list_visits(self, owner_id: UUID) -> list[RestaurantVisit]:
        """Return all visits for the owner, newest first."""
        key = _cache_key(owner_id)
        cached = self.cache.get(key)
        if isinstance(cached, list):
            return list(cached)
        visits = self.repository.list_visits(owner_id)
        self.cache.set(key, list(visits), self.cache_ttl_seconds)
        return visits

    def search_visits(self, owner_id: UUID, query: str | None) -> list[RestaurantVisit]:
        """Search visits, returning everything for an empty query."""
        cleaned = (query or "").strip()
        if not cleaned:
            return self.list_visits(owner_id)
        return self.repository.search_visits(owner_id, cleaned)

    def get_visit(self, owner_id: UUID, visit_id: UUID) -> RestaurantVisit:
        """Return one visit or raise NotFoundError."""
        visit = self.repository.get_visit(owner_id, visit_id)
        if visit is None:
            raise NotFoundError("Visit not found")
        return visit

    def create_visit_with_dishes(
        self, owner_id: UUID, visit: NewVisit, dishes: list[NewDish]
    ) -> UUID:
        """Insert the visit, then its dishes in one batch.

        Dishes are never written when the visit insert fails. If the dish insert
        fails the visit row is removed again.
        """
        _validate_new_visit(visit)
        for dish in dishes:
            _validate_rating(dish.rating, required=False)
        try:
            visit_id = self.repository.create_visit(owner_id, visit)
        except DishDiscoveryError:
            raise
        except Exception as exc:
            raise PersistenceFault("Failed to save visit", cause=exc) from exc
        try:
            self.repository.create_dishes(owner_id, visit_id, dishes)
        except Exception as exc:
            logger.exception(
                "Failed to save dishes, rolling back visit",
                extra={"visit_id": str(visit_id)},
            )
            self._rollback_visit(owner_id, visit_id)
            if isinstance(exc, DishDiscoveryError):
                raise
            raise PersistenceFault("Failed to save dishes", cause=exc) from exc
        finally:
            self._invalidate(owner_id)
        return visit_id

    def update_visit(
        self, owner_id: UUID, visit_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update whitelisted visit fields."""
        updates = _pick(fields, VISIT_FIELDS)
        _reject_nulls(updates, NON_NULL_VISIT_FIELDS)
        if "restaurant_name" in updates:
            name = str(updates["restaurant_name"] or "").strip()
            if not name:
                raise InputValidationError("Restaurant name is required")
            updates["restaurant_name"] = name
        if "overall_rating" in updates:
            _validate_rating(updates["overall_rating"], required=False)
        if isinstance(updates.get("visit_date"), str):
            updates["visit_date"] = _parse_date(str(updates["visit_date"]))
        self._write(owner_id, self.repository.update_visit, visit_id, updates)

    def update_dish(
        self, owner_id: UUID, dish_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update whitelisted dish fields."""
        updates = _pick(fields, DISH_FIELDS)
        _reject_nulls(updates, NON_NULL_DISH_FIELDS)
        if "rating" in updates:
            _validate_rating(updates["rating"], required=False)
        if "name" in updates and not str(updates["name"] or "").strip():
            raise InputValidationError("Dish name is required")
        self._write(owner_id, self.repository.update_dish, dish_id, updates)

    def delete_dish(self, owner_id: UUID, dish_id: UUID) -> None:
        """Delete one dish."""
        self._write(owner_id, self.repository.delete_dish, dish_id)

    def delete_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        """Delete a visit together with its dishes."""
        self._write(owner_id, self.repository.delete_visit, visit_id)

    def get_dish(self, owner_id: UUID, dish_id: UUID) -> Dish:
        """Return one dish or raise NotFoundError."""
        dish = self.repository.get_dish(owner_id, dish_id)
        if dish is None:
            raise NotFoundError("Dish not found")
        return dish

    def find_dish_id(self, owner_id: UUID, visit_id: UUID, name: str) -> UUID | None:
        """Resolve a dish id by (visit, name)."""
        return self.repository.find_dish_id(owner_id, visit_id, name)

    def dishes_to_recreate(self, owner_id: UUID) -> list[RecreateDish]:
        """Return dishes flagged for recreation across all visits."""
        return [
            RecreateDish(
                dish=dish,
                restaurant_name=visit.restaurant_name,
                visit_date=visit.visit_date,
            )
            for visit in self.list_visits(owner_id)
            for dish in visit.dishes
            if dish.want_to_recreate
        ]

    def _write(
        self, owner_id: UUID, operation: Callable[..., None], *args: object
    ) -> None:
        try:
            operation(owner_id, *args)
        except DishDiscoveryError:
            raise
        except Exception as exc:
            raise PersistenceFault("Failed to save changes", cause=exc) from exc
        finally:
            self._invalidate(owner_id)

    def _rollback_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        try:
            self.repository.delete_visit(owner_id, visit_id)
        except Exception:
            logger.exception(
                "Failed to roll back visit", extra={"visit_id": str(visit_id)}
            )

    def _invalidate(self, owner_id: UUID) -> None:
        self.cache.delete(_cache_key(owner_id))


def validate_rating(value: object) -> int:
    """Return a 1-5 integer rating or raise InputValidationError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError("Rating must be a whole number")
    if not MIN_RATING <= value <= MAX_RATING:
        raise InputValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )
    return value


def _validate_rating(value: object, *, required: bool) -> None:
    if value is None and not required:
        return
    validate_rating(value)


def _validate_new_visit(visit: NewVisit) -> None:
    if not visit.restaurant_name.strip():
        raise InputValidationError("Restaurant name is required")
    _validate_rating(visit.overall_rating, required=False)


def _pick(fields: dict[str, object], allowed: frozenset[str]) -> dict[str, object]:
    return {key: value for key, value in fields.items() if key in allowed}


def _reject_nulls(updates: dict[str, object], required: frozenset[str]) -> None:
    for key in sorted(required):
        if key in updates and updates[key] is None:
            raise InputValidationError(f"{key} cannot be empty")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except ValueError as exc:
        raise InputValidationError("Visit date must be YYYY-MM-DD") from exc


def _cache_key(owner_id: UUID) -> str:
    return f"visits:{owner_id}"
