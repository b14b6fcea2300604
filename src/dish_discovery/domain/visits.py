"""Domain models for restaurant visits and their dishes."""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class Dish:
    """Dish row belonging to a visit."""

    id: UUID
    visit_id: UUID
    name: str
    description: str | None
    price: str | None
    category: str | None
    ordered: bool
    rating: int | None
    notes: str | None
    want_to_recreate: bool


@dataclass(frozen=True)
class RestaurantVisit:
    """Visit aggregate with its dishes."""

    id: UUID
    user_id: UUID
    restaurant_name: str
    location: str | None
    visit_date: date
    menu_photo_url: str | None
    notes: str | None
    overall_rating: int | None
    dishes: list[Dish] = field(default_factory=list)

    @property
    def average_rating(self) -> float:
        """Mean of rated dishes; unrated dishes are skipped."""
        ratings = [dish.rating for dish in self.dishes if dish.rating]
        if not ratings:
            return 0.0
        return sum(ratings) / len(ratings)


@dataclass(frozen=True)
class NewVisit:
    """Fields for a visit insert."""

    restaurant_name: str
    visit_date: date
    location: str | None = None
    menu_photo_url: str | None = None
    notes: str | None = None
    overall_rating: int | None = None


@dataclass(frozen=True)
class NewDish:
    """Fields for a dish insert; the visit id is supplied separately."""

    name: str
    description: str | None = None
    price: str | None = None
    category: str | None = None
    rating: int | None = None
    notes: str | None = None
    want_to_recreate: bool = False
    ordered: bool = True


@dataclass(frozen=True)
class RecreateDish:
    """Dish flagged for recreation, joined with its visit for display."""

    dish: Dish
    restaurant_name: str
    visit_date: date
