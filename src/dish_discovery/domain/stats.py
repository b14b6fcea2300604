"""Domain models for statistics."""

from dataclasses import dataclass


@dataclass(frozen=True)
class VisitStats:
    """Summary statistics over a user's visits."""

    total_visits: int
    total_dishes: int
    average_rating: float
    favorite_restaurant: str | None
