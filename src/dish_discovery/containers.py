"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from supabase import create_client

from dish_discovery.adapters.openai_structured_client import OpenAIStructuredClient
from dish_discovery.adapters.supabase_auth_provider import SupabaseIdentityProvider
from dish_discovery.adapters.supabase_recipe_repository import (
    SupabaseRecipeRepository,
)
from dish_discovery.adapters.supabase_visit_repository import SupabaseVisitRepository
from dish_discovery.config import Settings
from dish_discovery.services.auth import AuthService
from dish_discovery.services.cache import InMemoryCache
from dish_discovery.services.discovery import RecipeDiscoveryService
from dish_discovery.services.recipes import (
    RecipeGenerator,
    RecipeRepository,
    RecipeService,
)
from dish_discovery.services.stats import StatsService
from dish_discovery.services.vision import MenuVisionService, StructuredOutputClient
from dish_discovery.services.visits import VisitRepository, VisitService
from dish_discovery.services.workflow import VisitWorkflow, WorkflowRegistry


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    vision_service: MenuVisionService
    visit_service: VisitService
    recipe_service: RecipeService
    stats_service: StatsService
    discovery_service: RecipeDiscoveryService
    workflows: WorkflowRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    openai_client = OpenAIStructuredClient.create(resolved_settings.openai_api_key)

    async def close_resources() -> None:
        await openai_client.client.close()

    return assemble_container(
        settings=resolved_settings,
        llm_client=openai_client,
        visit_repository=SupabaseVisitRepository(supabase_client),
        recipe_repository=SupabaseRecipeRepository(supabase_client),
        auth_service=AuthService(SupabaseIdentityProvider(supabase_client)),
        close_resources=close_resources,
    )


def assemble_container(  # noqa: PLR0913
    *,
    settings: Settings,
    llm_client: StructuredOutputClient,
    visit_repository: VisitRepository,
    recipe_repository: RecipeRepository,
    auth_service: AuthService,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Wire services around the given clients and repositories."""
    vision_service = MenuVisionService(
        client=llm_client,
        model=settings.openai_model,
        store=settings.openai_store,
        timeout_seconds=settings.vision_timeout_seconds,
    )
    visit_service = VisitService(
        repository=visit_repository,
        cache=InMemoryCache(),
        cache_ttl_seconds=settings.visit_cache_ttl_seconds,
    )
    recipe_service = RecipeService(
        generator=RecipeGenerator(
            client=llm_client,
            model=settings.openai_model,
            store=settings.openai_store,
            timeout_seconds=settings.recipe_timeout_seconds,
        ),
        repository=recipe_repository,
        visit_service=visit_service,
    )

    def new_workflow(owner_id: UUID) -> VisitWorkflow:
        return VisitWorkflow(
            owner_id=owner_id,
            vision_service=vision_service,
            visit_service=visit_service,
            recipe_service=recipe_service,
        )

    return AppContainer(
        settings=settings,
        auth_service=auth_service,
        vision_service=vision_service,
        visit_service=visit_service,
        recipe_service=recipe_service,
        stats_service=StatsService(visit_service),
        discovery_service=RecipeDiscoveryService(
            recipe_service=recipe_service, visit_service=visit_service
        ),
        workflows=WorkflowRegistry(factory=new_workflow),
        close_resources=close_resources,
    )
