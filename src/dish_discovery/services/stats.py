"""Statistics over a user's restaurant visits."""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from dish_discovery.domain.stats import VisitStats
from dish_discovery.domain.visits import RestaurantVisit
from dish_discovery.services.visits import VisitService


@dataclass
class StatsService:
    """Service for computing dashboard stats."""

    visit_service: VisitService

    def get_stats(self, owner_id: UUID) -> VisitStats:
        """Return summary stats for all of the owner's visits."""
        return summarize(self.visit_service.list_visits(owner_id))


def summarize(visits: Sequence[RestaurantVisit]) -> VisitStats:
    """Compute all dashboard stats in one pass over the visits."""
    return VisitStats(
        total_visits=total_visits(visits),
        total_dishes=total_dishes(visits),
        average_rating=average_rating(visits),
        favorite_restaurant=favorite_restaurant(visits),
    )


def total_visits(visits: Sequence[RestaurantVisit]) -> int:
    return len(visits)


def total_dishes(visits: Sequence[RestaurantVisit]) -> int:
    return sum(len(visit.dishes) for visit in visits)


def average_rating(visits: Sequence[RestaurantVisit]) -> float:
    """Average of per-visit dish rating means.

    Unrated dishes are left out of a visit's mean. A visit without any rated
    dish still counts in the outer average with a mean of 0.
    """
    if not visits:
        return 0.0
    return sum(visit.average_rating for visit in visits) / len(visits)


def favorite_restaurant(visits: Sequence[RestaurantVisit]) -> str | None:
    """Most visited restaurant; ties go to the one seen first."""
    counts = Counter(visit.restaurant_name for visit in visits)
    if not counts:
        return None
    return max(counts, key=lambda name: counts[name])
