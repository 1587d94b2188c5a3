"""Prometheus metrics for the completion relay.

Custom business metrics that complement the auto-instrumented HTTP
metrics provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``coderelay_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from coderelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stream metrics
# ---------------------------------------------------------------------------

COMPLETION_STREAMS_ACTIVE = Gauge(
    "coderelay_completion_streams_active",
    "Number of completion streams currently being relayed",
    ["provider"],
)

COMPLETION_STREAMS_TOTAL = Counter(
    "coderelay_completion_streams_total",
    "Total completion streams, by provider and outcome",
    ["provider", "status"],  # "ok" | "error" | "timeout" | "cancelled"
)

COMPLETION_STREAM_DURATION_SECONDS = Histogram(
    "coderelay_completion_stream_duration_seconds",
    "End-to-end duration of a relayed completion stream",
    ["provider"],
    buckets=(0.5, 1, 2, 5, 10, 20, 30, 45, 60),
)

STREAM_CHUNKS_TOTAL = Counter(
    "coderelay_stream_chunks_total",
    "Total byte chunks relayed to clients",
    ["provider"],
)

# ---------------------------------------------------------------------------
# History selection metrics
# ---------------------------------------------------------------------------

HISTORY_MESSAGES_SELECTED = Histogram(
    "coderelay_history_messages_selected",
    "Messages submitted to the provider after selection",
    buckets=(1, 2, 3, 5, 7, 10, 15, 20),
)

CODE_BLOCKS_STRIPPED_TOTAL = Counter(
    "coderelay_code_blocks_stripped_total",
    "Assistant messages whose fenced code blocks were removed",
)


def setup_metrics(app: FastAPI, config: TracingConfig) -> None:
    """Attach HTTP instrumentation middleware and the ``/metrics`` endpoint.

    Adds middleware, so it must run before the application starts.
    """
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=config.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
