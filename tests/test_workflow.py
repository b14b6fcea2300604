"""Tests for the visit capture workflow."""

import asyncio
import gc
from datetime import date

import pytest

from dish_discovery.containers import AppContainer
from dish_discovery.errors import (
    ExtractionFault,
    InputValidationError,
    PersistenceFault,
    WorkflowStateError,
)
from dish_discovery.services.workflow import VisitWorkflow, WorkflowState
from tests.conftest import (
    OWNER_ID,
    FakeStructuredClient,
    InMemoryRecipeRepository,
    InMemoryVisitRepository,
    menu_payload,
)


def _workflow(container: AppContainer) -> VisitWorkflow:
    return container.workflows.get(OWNER_ID)


def _rated_workflow(container: AppContainer) -> VisitWorkflow:
    workflow = _workflow(container)
    workflow.start()
    workflow.capture(b"\xff\xd8\xffmenu")
    asyncio.run(workflow.analyze())
    workflow.select([0, 1])
    workflow.rate("dish-0", 5, notes="Silky", want_to_recreate=True)
    workflow.rate("dish-1", 3)
    return workflow


def test_full_visit_flow_saves_visit_and_generates_recipes(
    container: AppContainer,
    llm_client: FakeStructuredClient,
    visit_repository: InMemoryVisitRepository,
    recipe_repository: InMemoryRecipeRepository,
) -> None:
    workflow = _rated_workflow(container)
    assert workflow.can_complete

    async def run() -> None:
        visit_id = await workflow.complete_visit(
            "Trattoria Roma", location="Rome", visit_date=date(2024, 6, 1)
        )
        assert workflow.recipe_generation is not None
        result = await workflow.recipe_generation
        assert result.recipes_generated == 1
        assert visit_id == workflow.last_visit_id

    asyncio.run(run())

    assert workflow.state == WorkflowState.IDLE
    visit = next(iter(visit_repository.visits.values()))
    assert visit.restaurant_name == "Trattoria Roma"
    assert [dish.rating for dish in visit.dishes] == [5, 3]
    assert visit.dishes[0].want_to_recreate
    recipe = next(iter(recipe_repository.recipes.values()))
    assert recipe.title == "Home Carbonara"
    assert recipe.linked_dish_id == visit.dishes[0].id
    recipe_calls = [c for c in llm_client.calls if c["schema_name"] == "recipe"]
    assert len(recipe_calls) == 1

    (listed,) = container.visit_service.list_visits(OWNER_ID)
    assert listed.id == visit.id
    assert listed.location == "Rome"
    assert {
        (dish.name, dish.rating, dish.want_to_recreate) for dish in listed.dishes
    } == {("Carbonara", 5, True), ("Tiramisu", 3, False)}


def test_complete_without_recreate_flags_skips_recipe_generation(
    container: AppContainer, llm_client: FakeStructuredClient
) -> None:
    workflow = _workflow(container)
    workflow.capture("data:image/png;base64,AAAA")
    asyncio.run(workflow.analyze())
    workflow.select([1])
    workflow.rate("dish-1", 4)

    asyncio.run(workflow.complete_visit("Cafe"))

    assert workflow.recipe_generation is None
    assert [call["schema_name"] for call in llm_client.calls] == ["menu_analysis"]


def test_capture_rejects_empty_photo(container: AppContainer) -> None:
    workflow = _workflow(container)

    with pytest.raises(InputValidationError):
        workflow.capture(b"")
    with pytest.raises(InputValidationError):
        workflow.capture("   ")

    assert workflow.photo is None


def test_analyze_with_zero_dishes_moves_to_selecting(
    container: AppContainer, llm_client: FakeStructuredClient
) -> None:
    llm_client.menu = menu_payload()
    workflow = _workflow(container)
    workflow.capture(b"menu")

    candidates = asyncio.run(workflow.analyze())

    assert candidates == []
    assert workflow.state == WorkflowState.SELECTING
    with pytest.raises(InputValidationError):
        workflow.select([])


def test_analysis_failure_keeps_photo_and_allows_retry(
    container: AppContainer, llm_client: FakeStructuredClient
) -> None:
    llm_client.menu_error = RuntimeError("timeout")
    workflow = _workflow(container)
    workflow.capture(b"menu")

    with pytest.raises(ExtractionFault):
        asyncio.run(workflow.analyze())

    assert workflow.state == WorkflowState.FAILED
    assert workflow.failed_step == WorkflowState.ANALYZING
    assert workflow.photo == b"menu"
    assert workflow.snapshot()["error"] == "Failed to analyze menu"

    llm_client.menu_error = None
    candidates = asyncio.run(workflow.analyze())

    assert [candidate.name for candidate in candidates] == ["Carbonara", "Tiramisu"]
    assert workflow.state == WorkflowState.SELECTING
    assert workflow.error_message is None


def test_new_capture_is_allowed_after_failed_analysis(
    container: AppContainer, llm_client: FakeStructuredClient
) -> None:
    llm_client.menu_error = RuntimeError("timeout")
    workflow = _workflow(container)
    workflow.capture(b"blurry")
    with pytest.raises(ExtractionFault):
        asyncio.run(workflow.analyze())

    workflow.capture(b"sharp")

    assert workflow.state == WorkflowState.ANALYZING
    assert workflow.photo == b"sharp"
    assert workflow.failed_step is None


def test_select_rejects_unknown_and_duplicate_indices(
    container: AppContainer,
) -> None:
    workflow = _workflow(container)
    workflow.capture(b"menu")
    asyncio.run(workflow.analyze())

    with pytest.raises(InputValidationError):
        workflow.select([2])
    with pytest.raises(InputValidationError):
        workflow.select([0, 0])
    with pytest.raises(InputValidationError):
        workflow.select([-1])

    assert workflow.state == WorkflowState.SELECTING


def test_reselect_keeps_ratings_of_dishes_still_selected(
    container: AppContainer,
) -> None:
    workflow = _rated_workflow(container)

    workflow.select([0])

    assert list(workflow.ratings) == ["dish-0"]
    assert workflow.can_complete


def test_rate_validates_range_and_dish(container: AppContainer) -> None:
    workflow = _workflow(container)
    workflow.capture(b"menu")
    asyncio.run(workflow.analyze())
    workflow.select([0])

    for bad in (0, 6, True):
        with pytest.raises(InputValidationError):
            workflow.rate("dish-0", bad)
    with pytest.raises(InputValidationError):
        workflow.rate("dish-7", 3)

    workflow.rate("dish-0", 2)
    workflow.rate("dish-0", 4, notes="  better second time ")

    assert workflow.ratings["dish-0"].rating == 4
    assert workflow.ratings["dish-0"].notes == "better second time"


def test_complete_requires_every_dish_rated(
    container: AppContainer, visit_repository: InMemoryVisitRepository
) -> None:
    workflow = _workflow(container)
    workflow.capture(b"menu")
    asyncio.run(workflow.analyze())
    workflow.select([0, 1])
    workflow.rate("dish-0", 5)

    assert workflow.missing_ratings() == ["dish-1"]
    assert not workflow.can_complete
    with pytest.raises(InputValidationError):
        asyncio.run(workflow.complete_visit("Trattoria"))

    assert workflow.state == WorkflowState.RATING
    assert visit_repository.visits == {}


def test_complete_requires_restaurant_name(container: AppContainer) -> None:
    workflow = _rated_workflow(container)

    with pytest.raises(InputValidationError):
        asyncio.run(workflow.complete_visit("   "))

    assert workflow.state == WorkflowState.RATING


def test_complete_rejects_invalid_overall_rating(container: AppContainer) -> None:
    workflow = _rated_workflow(container)

    with pytest.raises(InputValidationError):
        asyncio.run(workflow.complete_visit("Trattoria", overall_rating=9))


def test_save_failure_keeps_draft_and_allows_retry(
    container: AppContainer, visit_repository: InMemoryVisitRepository
) -> None:
    workflow = _rated_workflow(container)
    visit_repository.fail_visit_insert = True

    with pytest.raises(PersistenceFault):
        asyncio.run(workflow.complete_visit("Trattoria"))

    assert workflow.state == WorkflowState.FAILED
    assert workflow.failed_step == WorkflowState.SAVING
    assert len(workflow.selected) == 2
    assert workflow.ratings["dish-0"].rating == 5
    assert visit_repository.visits == {}

    workflow.rate("dish-1", 4)
    visit_repository.fail_visit_insert = False

    async def retry() -> None:
        await workflow.complete_visit("Trattoria")
        if workflow.recipe_generation is not None:
            await workflow.recipe_generation

    asyncio.run(retry())

    assert workflow.state == WorkflowState.IDLE
    assert len(visit_repository.visits) == 1


def test_failed_dish_insert_rolls_back_visit(
    container: AppContainer, visit_repository: InMemoryVisitRepository
) -> None:
    workflow = _rated_workflow(container)
    visit_repository.fail_dish_insert = True

    with pytest.raises(PersistenceFault):
        asyncio.run(workflow.complete_visit("Trattoria"))

    assert visit_repository.visits == {}
    assert workflow.failed_step == WorkflowState.SAVING


def test_recipe_failures_do_not_affect_saved_visit(
    container: AppContainer,
    llm_client: FakeStructuredClient,
    visit_repository: InMemoryVisitRepository,
    recipe_repository: InMemoryRecipeRepository,
) -> None:
    llm_client.recipe_error = RuntimeError("model unavailable")
    workflow = _rated_workflow(container)

    async def run() -> None:
        await workflow.complete_visit("Trattoria")
        assert workflow.recipe_generation is not None
        result = await workflow.recipe_generation
        assert result.success
        assert result.recipes_generated == 0

    asyncio.run(run())

    assert len(visit_repository.visits) == 1
    assert recipe_repository.recipes == {}


def test_out_of_order_operations_are_rejected(container: AppContainer) -> None:
    workflow = _workflow(container)

    with pytest.raises(WorkflowStateError):
        asyncio.run(workflow.analyze())
    with pytest.raises(WorkflowStateError):
        workflow.select([0])
    with pytest.raises(WorkflowStateError):
        workflow.rate("dish-0", 3)
    with pytest.raises(WorkflowStateError):
        asyncio.run(workflow.complete_visit("Trattoria"))


def test_cancel_discards_draft(container: AppContainer) -> None:
    workflow = _rated_workflow(container)

    workflow.cancel()

    snapshot = workflow.snapshot()
    assert snapshot["state"] == "IDLE"
    assert snapshot["selected"] == []
    assert snapshot["ratings"] == {}
    assert not snapshot["has_photo"]


def test_registry_keeps_one_workflow_per_owner(container: AppContainer) -> None:
    first = container.workflows.get(OWNER_ID)

    assert container.workflows.get(OWNER_ID) is first

    container.workflows.discard(OWNER_ID)

    assert container.workflows.get(OWNER_ID) is not first


def test_one_failed_recipe_still_saves_the_other(
    container: AppContainer,
    llm_client: FakeStructuredClient,
    recipe_repository: InMemoryRecipeRepository,
) -> None:
    llm_client.failing_dishes = {"Tiramisu"}
    workflow = _workflow(container)
    workflow.capture(b"menu")
    asyncio.run(workflow.analyze())
    workflow.select([0, 1])
    workflow.rate("dish-0", 4, want_to_recreate=True)
    workflow.rate("dish-1", 5, want_to_recreate=True)

    async def run() -> int:
        await workflow.complete_visit("Trattoria")
        assert workflow.recipe_generation is not None
        result = await workflow.recipe_generation
        return result.recipes_generated

    assert asyncio.run(run()) == 1
    assert [r.title for r in recipe_repository.recipes.values()] == [
        "Home Carbonara"
    ]


def test_background_batches_outlive_replaced_and_discarded_workflows(
    container: AppContainer,
    llm_client: FakeStructuredClient,
    recipe_repository: InMemoryRecipeRepository,
) -> None:
    async def run() -> None:
        llm_client.recipe_gate = asyncio.Event()
        workflow = _workflow(container)
        for restaurant in ("Trattoria", "Osteria"):
            workflow.capture(b"menu")
            await workflow.analyze()
            workflow.select([0])
            workflow.rate("dish-0", 5, want_to_recreate=True)
            await workflow.complete_visit(restaurant)

        container.workflows.discard(OWNER_ID)
        del workflow
        gc.collect()
        assert container.recipe_service.pending_batches == 2

        llm_client.recipe_gate.set()
        await container.recipe_service.wait_for_pending()
        assert container.recipe_service.pending_batches == 0

    asyncio.run(run())

    assert len(recipe_repository.recipes) == 2
