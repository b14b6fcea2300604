"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dish_discovery.api.recipes import router as recipes_router
from dish_discovery.api.visits import router as visits_router
from dish_discovery.api.workflow import router as workflow_router
from dish_discovery.app_logging import configure_logging
from dish_discovery.containers import AppContainer
from dish_discovery.errors import (
    AuthorizationError,
    DishDiscoveryError,
    ExtractionFault,
    GenerationFault,
    InputValidationError,
    NotFoundError,
    PersistenceFault,
    WorkflowStateError,
)

_STATUS_CODES: tuple[tuple[type[DishDiscoveryError], int], ...] = (
    (InputValidationError, 422),
    (WorkflowStateError, 409),
    (ExtractionFault, 502),
    (GenerationFault, 502),
    (PersistenceFault, 503),
    (AuthorizationError, 401),
    (NotFoundError, 404),
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        state_container: AppContainer = app.state.container
        await state_container.recipe_service.wait_for_pending()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(workflow_router)
    app.include_router(visits_router)
    app.include_router(recipes_router)

    @app.exception_handler(DishDiscoveryError)
    async def handle_domain_error(
        request: Request, exc: DishDiscoveryError
    ) -> JSONResponse:
        state_container: AppContainer = request.app.state.container
        status_code = error_status_code(exc)
        if status_code >= 500:  # noqa: PLR2004
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "code": exc.code},
                exc_info=exc.cause or exc,
            )
        return JSONResponse(
            status_code=status_code,
            content=_format_error(state_container, exc),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def error_status_code(exc: DishDiscoveryError) -> int:
    """Map a domain error to its HTTP status."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _format_error(
    state_container: AppContainer, exc: DishDiscoveryError
) -> dict[str, object]:
    """Return the error body, with debug info in the local environment."""
    body: dict[str, object] = {
        "error": exc.message,
        "code": exc.code,
        "retryable": exc.retryable,
    }
    if state_container.settings.environment == "local" and exc.cause is not None:
        body["debug"] = f"{type(exc.cause).__name__}: {exc.cause}".strip()
    return body
