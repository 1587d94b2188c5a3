"""Async SQLAlchemy engine and session factory (**leaf module**).

``build_db`` is a lifespan dependency: it creates the engine +
session factory, attaches them to ``app.state``, and disposes the
engine on shutdown.  Per-request dependencies read from ``app.state``.

Kept outside the ``db`` package so ``telemetry`` can
``Depends(build_db)`` without importing the repository layer.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from coderelay.configs.config import AppConfig, get_app_config
from coderelay.infra.lifespan import get_app

logger = logging.getLogger(__name__)


async def build_db(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Create engine + session factory, attach to ``app.state``."""
    tp = config.third_party
    engine = create_async_engine(
        tp.postgres_uri,
        pool_pre_ping=True,
        pool_size=tp.postgres_pool_size,
        max_overflow=tp.postgres_max_overflow,
    )
    app.state.engine = engine
    app.state.session_factory = async_sessionmaker(engine, expire_on_commit=False)
    logger.info("Database engine created (pool_size=%d)", tp.postgres_pool_size)
    yield
    await engine.dispose()


def get_session_factory(
    request: Request,
) -> async_sessionmaker[AsyncSession]:
    """Return the ``async_sessionmaker`` from ``app.state``."""
    return request.app.state.session_factory
