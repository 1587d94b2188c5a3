"""OpenTelemetry bootstrap: tracing initialisation and span names.

Configures a ``TracerProvider`` with an OTLP HTTP exporter when tracing is
enabled via ``TracingConfig``.  When disabled the module is a no-op and
``tracer`` hands out non-recording spans.

Auto-instrumentations wired here:

- **FastAPI** (inbound HTTP spans)
- **httpx** (outbound HTTP spans, covers both provider SDKs)
- **SQLAlchemy** (DB spans)
"""

from __future__ import annotations

import base64
import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI
from opentelemetry import trace

from coderelay.configs.system import TracingConfig
from coderelay.infra.db_engine import build_db
from coderelay.infra.lifespan import get_app

logger = logging.getLogger(__name__)

_otel_enabled = False

tracer = trace.get_tracer("coderelay")

# ---------------------------------------------------------------------------
# Span names and attribute keys
# ---------------------------------------------------------------------------

SPAN_HISTORY_LOAD = "history.load"
SPAN_COMPLETION_STREAM = "completion.stream"

ATTR_HISTORY_CHAT_ID = "history.chat_id"
ATTR_HISTORY_MESSAGE_COUNT = "history.message_count"

ATTR_STREAM_PROVIDER = "stream.provider"
ATTR_STREAM_CHUNKS = "stream.chunks"
ATTR_STREAM_STATUS = "stream.status"


def init_telemetry(
    app: object | None = None,
    settings: TracingConfig | None = None,
) -> None:
    """Initialise the OTEL ``TracerProvider`` and auto-instrumentations.

    No-op when *settings* is ``None`` or tracing is disabled.
    """
    global _otel_enabled  # noqa: PLW0603

    if settings is None or not settings.enabled:
        logger.info("OpenTelemetry tracing disabled.")
        return

    if not settings.endpoint or not settings.username or not settings.password:
        logger.warning(
            "Tracing enabled but endpoint/credentials not configured; "
            "skipping OpenTelemetry setup."
        )
        return

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(settings.sample_rate)),
    )

    credentials = f"{settings.username}:{settings.password}"
    encoded = base64.b64encode(credentials.encode()).decode()
    exporter = OTLPSpanExporter(
        endpoint=settings.endpoint,
        headers={"Authorization": f"Basic {encoded}"},
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(
            app, excluded_urls=",".join(settings.excluded_urls)
        )

    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    HTTPXClientInstrumentor().instrument()

    _otel_enabled = True
    logger.info(
        "OpenTelemetry tracing initialised (service=%s).", settings.service_name
    )


def instrument_sqlalchemy(engine: object) -> None:
    """Instrument a SQLAlchemy engine for DB span tracing.

    No-op when OTEL is not enabled.
    """
    if not _otel_enabled:
        return

    from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

    sync_engine = getattr(engine, "sync_engine", engine)
    SQLAlchemyInstrumentor().instrument(engine=sync_engine)
    logger.info("SQLAlchemy engine instrumented for OTEL tracing.")


async def build_telemetry(
    app: Annotated[FastAPI, Depends(get_app)],
    _db: Annotated[None, Depends(build_db)],
) -> AsyncGenerator[None, None]:
    """Instrument the engine ``build_db`` created.

    ``init_telemetry`` itself runs in ``get_app`` because the FastAPI
    instrumentor adds middleware, which is not allowed after startup.
    """
    instrument_sqlalchemy(app.state.engine)
    yield
