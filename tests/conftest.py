"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import pytest

from dish_discovery.config import Settings
from dish_discovery.containers import AppContainer, assemble_container
from dish_discovery.domain.recipes import Difficulty, Recipe, RecipeDraft
from dish_discovery.domain.visits import Dish, NewDish, NewVisit, RestaurantVisit
from dish_discovery.errors import AuthorizationError, NotFoundError
from dish_discovery.services.auth import AuthService, IdentityProvider
from dish_discovery.services.recipes import RecipeRepository
from dish_discovery.services.vision import StructuredOutputClient
from dish_discovery.services.visits import VisitRepository

OWNER_ID = UUID("11111111-1111-1111-1111-111111111111")
OTHER_OWNER_ID = UUID("22222222-2222-2222-2222-222222222222")
TOKENS = {"owner-token": OWNER_ID, "other-token": OTHER_OWNER_ID}


def menu_payload(*names: str) -> dict[str, object]:
    """Structured menu output listing the given dish names."""
    return {
        "dishes": [
            {
                "name": name,
                "description": f"House {name.lower()}",
                "price": "$12",
                "category": "Mains",
            }
            for name in names
        ]
    }


def recipe_payload(title: str = "Home Carbonara") -> dict[str, object]:
    return {
        "title": title,
        "ingredients": ["200g spaghetti", "2 eggs", "50g pecorino"],
        "instructions": ["Boil pasta", "Whisk eggs", "Toss together"],
        "cook_time": "25 minutes",
        "servings": "2",
        "difficulty": "medium",
        "cuisine_type": "Italian",
    }


@dataclass
class FakeStructuredClient(StructuredOutputClient):
    """Fake LLM returning canned menu and recipe payloads."""

    menu: dict[str, object] = field(
        default_factory=lambda: menu_payload("Carbonara", "Tiramisu")
    )
    menu_error: Exception | None = None
    recipe_error: Exception | None = None
    failing_dishes: set[str] = field(default_factory=set)
    recipe_gate: asyncio.Event | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "schema_name": schema_name,
                "prompt": prompt,
                "image_data_url": image_data_url,
                "temperature": temperature,
                "timeout": timeout,
            }
        )
        if schema_name == "menu_analysis":
            if self.menu_error is not None:
                raise self.menu_error
            return self.menu
        if self.recipe_gate is not None:
            await self.recipe_gate.wait()
        if self.recipe_error is not None:
            raise self.recipe_error
        for name in self.failing_dishes:
            if f'"{name}"' in prompt:
                raise RuntimeError(f"model timed out for {name}")
        title = prompt.split('"')[1] if '"' in prompt else "Recipe"
        return recipe_payload(f"Home {title}")


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """Maps fixed access tokens to owners."""

    tokens: dict[str, UUID] = field(default_factory=lambda: dict(TOKENS))

    def resolve_user_id(self, access_token: str) -> UUID | None:
        return self.tokens.get(access_token)


@dataclass
class InMemoryVisitRepository(VisitRepository):
    """In-memory visit repository for tests."""

    visits: dict[UUID, RestaurantVisit] = field(default_factory=dict)
    fail_visit_insert: bool = False
    fail_dish_insert: bool = False
    list_calls: int = 0

    def create_visit(self, owner_id: UUID, visit: NewVisit) -> UUID:
        if self.fail_visit_insert:
            raise RuntimeError("connection reset")
        visit_id = uuid4()
        self.visits[visit_id] = RestaurantVisit(
            id=visit_id,
            user_id=owner_id,
            restaurant_name=visit.restaurant_name,
            location=visit.location,
            visit_date=visit.visit_date,
            menu_photo_url=visit.menu_photo_url,
            notes=visit.notes,
            overall_rating=visit.overall_rating,
        )
        return visit_id

    def create_dishes(
        self, owner_id: UUID, visit_id: UUID, dishes: list[NewDish]
    ) -> None:
        visit = self._owned(owner_id, visit_id)
        if self.fail_dish_insert:
            raise RuntimeError("insert failed")
        rows = [
            Dish(
                id=uuid4(),
                visit_id=visit_id,
                name=dish.name,
                description=dish.description,
                price=dish.price,
                category=dish.category,
                ordered=dish.ordered,
                rating=dish.rating,
                notes=dish.notes,
                want_to_recreate=dish.want_to_recreate,
            )
            for dish in dishes
        ]
        self.visits[visit_id] = replace(visit, dishes=[*visit.dishes, *rows])

    def list_visits(self, owner_id: UUID) -> list[RestaurantVisit]:
        self.list_calls += 1
        owned = [v for v in self.visits.values() if v.user_id == owner_id]
        return sorted(owned, key=lambda visit: visit.visit_date, reverse=True)

    def search_visits(self, owner_id: UUID, query: str) -> list[RestaurantVisit]:
        needle = query.lower()
        return [
            visit
            for visit in self.list_visits(owner_id)
            if needle in visit.restaurant_name.lower()
            or needle in (visit.location or "").lower()
            or any(needle in dish.name.lower() for dish in visit.dishes)
        ]

    def get_visit(self, owner_id: UUID, visit_id: UUID) -> RestaurantVisit | None:
        visit = self.visits.get(visit_id)
        if visit is None:
            return None
        if visit.user_id != owner_id:
            raise AuthorizationError("Visit belongs to another user")
        return visit

    def get_dish(self, owner_id: UUID, dish_id: UUID) -> Dish | None:
        for visit in self.visits.values():
            for dish in visit.dishes:
                if dish.id == dish_id:
                    if visit.user_id != owner_id:
                        raise AuthorizationError("Dish belongs to another user")
                    return dish
        return None

    def find_dish_id(self, owner_id: UUID, visit_id: UUID, name: str) -> UUID | None:
        visit = self.get_visit(owner_id, visit_id)
        if visit is None:
            return None
        for dish in visit.dishes:
            if dish.name == name:
                return dish.id
        return None

    def update_visit(
        self, owner_id: UUID, visit_id: UUID, fields: dict[str, object]
    ) -> None:
        visit = self._owned(owner_id, visit_id)
        self.visits[visit_id] = replace(visit, **fields)

    def update_dish(
        self, owner_id: UUID, dish_id: UUID, fields: dict[str, object]
    ) -> None:
        dish = self.get_dish(owner_id, dish_id)
        if dish is None:
            raise NotFoundError("Dish not found")
        visit = self.visits[dish.visit_id]
        dishes = [
            replace(row, **fields) if row.id == dish_id else row
            for row in visit.dishes
        ]
        self.visits[visit.id] = replace(visit, dishes=dishes)

    def delete_dish(self, owner_id: UUID, dish_id: UUID) -> None:
        dish = self.get_dish(owner_id, dish_id)
        if dish is None:
            raise NotFoundError("Dish not found")
        visit = self.visits[dish.visit_id]
        dishes = [row for row in visit.dishes if row.id != dish_id]
        self.visits[visit.id] = replace(visit, dishes=dishes)

    def delete_visit(self, owner_id: UUID, visit_id: UUID) -> None:
        self._owned(owner_id, visit_id)
        del self.visits[visit_id]

    def _owned(self, owner_id: UUID, visit_id: UUID) -> RestaurantVisit:
        visit = self.get_visit(owner_id, visit_id)
        if visit is None:
            raise NotFoundError("Visit not found")
        return visit


@dataclass
class InMemoryRecipeRepository(RecipeRepository):
    """In-memory recipe repository for tests."""

    recipes: dict[UUID, Recipe] = field(default_factory=dict)
    fail_writes: bool = False

    def upsert_recipe(self, owner_id: UUID, draft: RecipeDraft) -> Recipe:
        if self.fail_writes:
            raise RuntimeError("database unavailable")
        if draft.id is not None:
            self.get_recipe(owner_id, draft.id)
        recipe = Recipe(
            id=draft.id or uuid4(),
            user_id=owner_id,
            title=draft.title,
            ingredients=list(draft.ingredients),
            instructions=list(draft.instructions),
            cook_time=draft.cook_time,
            servings=draft.servings,
            difficulty=draft.difficulty,
            cuisine_type=draft.cuisine_type,
            source_type=draft.source_type,
            source_url=draft.source_url,
            image_url=draft.image_url,
            linked_dish_id=draft.linked_dish_id,
            saved_at=datetime.now(tz=UTC),
        )
        self.recipes[recipe.id] = recipe
        return recipe

    def get_recipe(self, owner_id: UUID, recipe_id: UUID) -> Recipe | None:
        recipe = self.recipes.get(recipe_id)
        if recipe is None:
            return None
        if recipe.user_id != owner_id:
            raise AuthorizationError("Recipe belongs to another user")
        return recipe

    def list_recipes(self, owner_id: UUID) -> list[Recipe]:
        owned = [r for r in self.recipes.values() if r.user_id == owner_id]
        return sorted(owned, key=lambda recipe: recipe.saved_at, reverse=True)

    def delete_recipe(self, owner_id: UUID, recipe_id: UUID) -> None:
        if self.get_recipe(owner_id, recipe_id) is None:
            raise NotFoundError("Recipe not found")
        del self.recipes[recipe_id]


def make_dish(  # noqa: PLR0913
    name: str,
    rating: int | None = None,
    *,
    visit_id: UUID | None = None,
    description: str | None = None,
    want_to_recreate: bool = False,
) -> Dish:
    return Dish(
        id=uuid4(),
        visit_id=visit_id or uuid4(),
        name=name,
        description=description,
        price=None,
        category=None,
        ordered=True,
        rating=rating,
        notes=None,
        want_to_recreate=want_to_recreate,
    )


def make_visit(
    restaurant_name: str,
    dishes: list[Dish] | None = None,
    *,
    visit_date: date | None = None,
    owner_id: UUID = OWNER_ID,
) -> RestaurantVisit:
    visit_id = uuid4()
    return RestaurantVisit(
        id=visit_id,
        user_id=owner_id,
        restaurant_name=restaurant_name,
        location=None,
        visit_date=visit_date or date(2024, 5, 1),
        menu_photo_url=None,
        notes=None,
        overall_rating=None,
        dishes=[replace(dish, visit_id=visit_id) for dish in dishes or []],
    )


def make_recipe(
    title: str,
    *,
    ingredients: list[str] | None = None,
    cuisine_type: str | None = None,
    difficulty: Difficulty | None = None,
    owner_id: UUID = OWNER_ID,
) -> Recipe:
    return Recipe(
        id=uuid4(),
        user_id=owner_id,
        title=title,
        ingredients=ingredients or [],
        instructions=["Cook"],
        cook_time="10 minutes",
        servings="2",
        difficulty=difficulty,
        cuisine_type=cuisine_type,
        source_type="ai",
        source_url=None,
        image_url=None,
        linked_dish_id=None,
        saved_at=datetime.now(tz=UTC),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
        environment="test",
    )


@pytest.fixture
def llm_client() -> FakeStructuredClient:
    return FakeStructuredClient()


@pytest.fixture
def visit_repository() -> InMemoryVisitRepository:
    return InMemoryVisitRepository()


@pytest.fixture
def recipe_repository() -> InMemoryRecipeRepository:
    return InMemoryRecipeRepository()


@pytest.fixture
def container(
    settings: Settings,
    llm_client: FakeStructuredClient,
    visit_repository: InMemoryVisitRepository,
    recipe_repository: InMemoryRecipeRepository,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return assemble_container(
        settings=settings,
        llm_client=llm_client,
        visit_repository=visit_repository,
        recipe_repository=recipe_repository,
        auth_service=AuthService(FakeIdentityProvider()),
        close_resources=close_resources,
    )
