"""Supabase repository for restaurant visits and dishes."""

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from dish_discovery.domain.visits import Dish, NewDish, NewVisit, RestaurantVisit
from dish_discovery.errors import AuthorizationError, NotFoundError, PersistenceFault
from dish_discovery.services.visits import VisitRepository

_VISITS = "restaurant_visits"
_DISHES = "dishes"
_FILTER_UNSAFE = re.compile(r"[,()%*\\]")


@dataclass
class SupabaseVisitRepository(VisitRepository):
    """Supabase implementation for visits; every call is owner-scoped."""

    client: Client

    def create_visit(self, owner_id: UUID, visit: NewVisit) -> UUID:
        """Create a visit row and return its id."""
        response = (
            self.client.table(_VISITS)
            .insert(
                {
                    "user_id": str(owner_id),
                    "restaurant_name": visit.restaurant_name,
                    "location": visit.location,
                    "visit_date": visit.visit_date.isoformat(),
                    "menu_photo_url": visit.menu_photo_url,
                    "notes": visit.notes,
                    "overall_rating": visit.overall_rating,
                }
            )
            .execute()
        )
        if not response.data:
            raise PersistenceFault("Failed to create visit")
        return UUID(response.data[0]["id"])

    def create_dishes(
        self, owner_id: UUID, visit_id: UUID, dishes: list[NewDish]
    ) -> None:
        """Batch insert dish rows."""
        if not dishes:
            return
        self._require_visit(owner_id, visit_id)
        payload = [
            {
                "visit_id": str(visit_id),
                "name": dish.name,
                "description": dish.description,
                "price": dish.price,
                "category": dish.category,
                "ordered": dish.ordered,
                "rating": dish.rating,
                "notes": dish.notes,
                "want_to_recreate": dish.want_to_recreate,
            }
            for dish in dishes
        ]
        response = self.client.table(_DISHES).insert(payload).execute()
        if not response.data:
            raise PersistenceFault("Failed to create dishes")

    def list_visits(self, owner_id: UUID) -> list[RestaurantVisit]:
        """Return visits with dishes, newest first."""
        response = (
            self.client.table(_VISITS)
            .select("*, dishes(*)")
            .eq("user_id", str(owner_id))
            .order("visit_date", desc=True)
            .execute()
        )
        return [_parse_visit(row) for row in response.data or []]

    def search_visits(self, owner_id: UUID, query: str) -> list[RestaurantVisit]:
        """Match restaurant name, location or any dish name."""
        cleaned = _FILTER_UNSAFE.sub(" ", query).strip()
        if not cleaned:
            return self.list_visits(owner_id)
        pattern = f"%{cleaned}%"
        by_visit = (
            self.client.table(_VISITS)
            .select("*, dishes(*)")
            .eq("user_id", str(owner_id))
            .or_(f"restaurant_name.ilike.{pattern},location.ilike.{pattern}")
            .execute()
        )
        matches = {row["id"]: row for row in by_visit.data or []}

        by_dish = (
            self.client.table(_DISHES)
            .select(f"visit_id, {_VISITS}!inner(user_id)")
            .eq(f"{_VISITS}.user_id", str(owner_id))
            .ilike("name", pattern)
            .execute()
        )
        extra_ids = {
            row["visit_id"]
            for row in by_dish.data or []
            if row["visit_id"] not in matches
        }
        if extra_ids:
            by_parent = (
                self.client.table(_VISITS)
                .select("*, dishes(*)")
                .eq("user_id", str(owner_id))
                .in_("id", sorted(extra_ids))
                .execute()
            )
            for row in by_parent.data or []:
                matches[row["id"]] = row

        visits = [_parse_visit(row) for row in matches.values()]
        return sorted(visits, key=lambda visit: visit.visit_date, reverse=True)

    def get_visit(self, owner_id: UUID, visit_id: UUID) -> RestaurantVisit | None:
        """Return a visit with dishes."""
        response = (
            self.client.table(_VISITS)
            .select("*, dishes(*)")
            .eq("id", str(visit_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        _check_owner(row, owner_id)
        return _parse_visit(row)

    def get_dish(self, owner_id: UUID, dish_id: UUID) -> Dish | None:
        """Return a dish whose visit belongs to the owner."""
        response = (
            self.client.table(_DISHES)
            .select("*")
            .eq("id", str(dish_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        dish = _parse_dish(response.data[0])
        self._require_visit(owner_id, dish.visit_id)
        return dish

    def find_dish_id(self, owner_id: UUID, visit_id: UUID, name: str) -> UUID | None:
        """Resolve a dish id by visit and exact name."""
        self._require_visit(owner_id, visit_id)
        response = (
            self.client.table(_DISHES)
            .select("id")
            .eq("visit_id", str(visit_id))
            .eq("name", name)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UUID(response.data[0]["id"])

    def update_visit(
        self, owner_id: UUID, visit_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update visit fields."""
        self._require_visit(owner_id, visit_id)
        payload = {key: _serialize(value) for key, value in fields.items()}
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        self.client.table(_VISITS).update(payload).eq("id", str(visit_id)).eq(
            "user_id", str(owner_id)
        ).execute()

    def update_dish(
        self, owner_id: UUID, dish_id: UUID, fields: dict[str, object]
    ) -> None:
        """Update dish fields."""
        self._require_dish(owner_id, dish_id)
        payload = {key: _serialize(value) for key, value in fields.items()}
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        self.client.table(_DISHES).update(payload).eq("id", str(dish_id)).execute()

    def delete_dish(self, owner_id: UUID, dish_id: UUID) -> None:
        """Delete a dish row."""
        self._require_dish(owner_id, dish_id)
        self.client.table(_DISHES).delete().eq("id", str(dish_id)).execute()

    def delete_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        """Delete the visit's dishes first, then the visit."""
        self._require_visit(owner_id, visit_id)
        self.client.table(_DISHES).delete().eq("visit_id", str(visit_id)).execute()
        self.client.table(_VISITS).delete().eq("id", str(visit_id)).eq(
            "user_id", str(owner_id)
        ).execute()

    def _require_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        response = (
            self.client.table(_VISITS)
            .select("id, user_id")
            .eq("id", str(visit_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            raise NotFoundError("Visit not found")
        _check_owner(response.data[0], owner_id)

    def _require_dish(self, owner_id: UUID, dish_id: UUID) -> None:
        if self.get_dish(owner_id, dish_id) is None:
            raise NotFoundError("Dish not found")


def _check_owner(row: dict[str, object], owner_id: UUID) -> None:
    if str(row.get("user_id")) != str(owner_id):
        raise AuthorizationError("Visit belongs to another user")


def _serialize(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _parse_visit(row: dict[str, object]) -> RestaurantVisit:
    dishes = row.get("dishes") or []
    return RestaurantVisit(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        restaurant_name=str(row.get("restaurant_name", "")),
        location=row.get("location"),
        visit_date=_parse_date(row.get("visit_date")),
        menu_photo_url=row.get("menu_photo_url"),
        notes=row.get("notes"),
        overall_rating=_to_int(row.get("overall_rating")),
        dishes=[_parse_dish(dish) for dish in dishes if isinstance(dish, dict)],
    )


def _parse_dish(row: dict[str, object]) -> Dish:
    return Dish(
        id=UUID(str(row["id"])),
        visit_id=UUID(str(row["visit_id"])),
        name=str(row.get("name", "")),
        description=row.get("description"),
        price=row.get("price"),
        category=row.get("category"),
        ordered=bool(row.get("ordered", True)),
        rating=_to_int(row.get("rating")),
        notes=row.get("notes"),
        want_to_recreate=bool(row.get("want_to_recreate", False)),
    )


def _parse_date(value: object) -> date:
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return date.min


def _to_int(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return int(value)
    return None
