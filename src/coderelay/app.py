"""FastAPI application entry point (``uvicorn coderelay.app:app``)."""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI

from coderelay.api.completion import router as completion_router
from coderelay.api.exceptions import register_exception_handlers
from coderelay.configs.config import get_app_config
from coderelay.core.metrics import setup_metrics
from coderelay.core.providers import build_providers
from coderelay.infra.db_engine import build_db
from coderelay.infra.lifespan import inject
from coderelay.infra.logging import setup_logging
from coderelay.infra.telemetry import build_telemetry, init_telemetry

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _db: Annotated[None, Depends(build_db)],
    _telemetry: Annotated[None, Depends(build_telemetry)],
    _providers: Annotated[None, Depends(build_providers)],
):
    logger.info("coderelay started")
    yield
    logger.info("coderelay shutting down")


def get_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Anything that adds middleware (tracing, metrics) or exception handlers
    happens here; Starlette freezes both once the app starts.
    """
    config = get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="coderelay",
        description="Streams the next chat completion for a stored conversation",
        version="0.1.0",
        lifespan=lifespan,
    )
    init_telemetry(app, config.tracing)
    setup_metrics(app, config.tracing)
    register_exception_handlers(app)
    app.include_router(completion_router)
    return app


app = get_app()
