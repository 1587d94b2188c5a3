"""SSE framing and relay for completion streams.

``frame_deltas`` turns a lazy sequence of text deltas into
OpenAI-style ``chat.completion.chunk`` events followed by the ``[DONE]``
sentinel.  It is provider-agnostic and pure, so it can be tested without
a network.

``open_stream`` awaits the upstream call inside the request handler, so a
refused request becomes an error response.  ``relay_stream`` then wraps
the provider byte stream with the request deadline, a tracing span,
metrics and logging.  Failures are logged and re-raised:
the HTTP layer then aborts the response, and a client that never sees
``[DONE]`` must treat the answer as incomplete.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Awaitable
from contextlib import aclosing
from datetime import timedelta

from pydantic import BaseModel, Field

from coderelay.infra.telemetry import (
    ATTR_STREAM_CHUNKS,
    ATTR_STREAM_PROVIDER,
    ATTR_STREAM_STATUS,
    SPAN_COMPLETION_STREAM,
    tracer,
)

from .metrics import (
    COMPLETION_STREAM_DURATION_SECONDS,
    COMPLETION_STREAMS_ACTIVE,
    COMPLETION_STREAMS_TOTAL,
    STREAM_CHUNKS_TOTAL,
)

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "
SSE_EVENT_END = "\n\n"
SSE_DONE = b"data: [DONE]\n\n"

STATUS_OK = "ok"
STATUS_ERROR = "error"
STATUS_TIMEOUT = "timeout"
STATUS_CANCELLED = "cancelled"


class ChunkDelta(BaseModel):
    content: str = Field(description="Incremental text")


class ChunkChoice(BaseModel):
    delta: ChunkDelta


class CompletionChunk(BaseModel):
    """Minimal ``chat.completion.chunk`` body understood by OpenAI clients."""

    choices: list[ChunkChoice]

    @classmethod
    def from_text(cls, text: str) -> "CompletionChunk":
        return cls(choices=[ChunkChoice(delta=ChunkDelta(content=text))])


def format_sse(payload: BaseModel) -> bytes:
    """Serialise *payload* as one ``data: <json>`` SSE event."""
    return f"{SSE_DATA_PREFIX}{payload.model_dump_json()}{SSE_EVENT_END}".encode()


async def frame_deltas(deltas: AsyncIterable[str]) -> AsyncIterator[bytes]:
    """Frame text deltas as SSE events and terminate with ``[DONE]``.

    Empty deltas are skipped.  The sentinel is only emitted when *deltas*
    ends normally; an exception from *deltas* propagates unchanged and
    events already yielded are not retracted.
    """
    async for text in deltas:
        if text:
            yield format_sse(CompletionChunk.from_text(text))
    yield SSE_DONE


def stream_deadline(request_timeout: timedelta) -> float:
    """Event-loop time at which the whole request must be finished."""
    return asyncio.get_running_loop().time() + request_timeout.total_seconds()


async def open_stream(
    opening: Awaitable[AsyncIterator[bytes]],
    *,
    provider_name: str,
    deadline: float,
    send_traceback: bool = False,
) -> AsyncIterator[bytes]:
    """Await a provider's ``open`` before any response headers are sent.

    A refused or timed-out request is logged, counted and re-raised, so the
    endpoint answers with an error status rather than an empty stream.
    """
    try:
        async with asyncio.timeout_at(deadline):
            return await opening
    except TimeoutError:
        COMPLETION_STREAMS_TOTAL.labels(
            provider=provider_name, status=STATUS_TIMEOUT
        ).inc()
        logger.warning(
            "%s upstream did not accept the request in time", provider_name
        )
        raise
    except Exception as e:
        COMPLETION_STREAMS_TOTAL.labels(
            provider=provider_name, status=STATUS_ERROR
        ).inc()
        logger.warning(
            "%s upstream refused the request: %s",
            provider_name,
            e,
            exc_info=send_traceback,
        )
        raise


async def relay_stream(
    stream: AsyncIterator[bytes],
    *,
    provider_name: str,
    request_timeout: timedelta,
    deadline: float | None = None,
    send_traceback: bool = False,
) -> AsyncIterator[bytes]:
    """Relay *stream* 1:1 with timeout enforcement, metrics and tracing.

    The stream is aborted at *deadline* (event-loop time), or
    *request_timeout* from the first read when no deadline is given.
    ``asyncio.CancelledError`` (client went away) is re-raised untouched so
    the in-flight upstream read is cancelled with it.  *stream* is always
    closed on exit, which releases the upstream connection.
    """
    if deadline is None:
        deadline = stream_deadline(request_timeout)
    with tracer.start_as_current_span(SPAN_COMPLETION_STREAM) as span:
        span.set_attribute(ATTR_STREAM_PROVIDER, provider_name)
        status = STATUS_OK
        chunks = 0
        COMPLETION_STREAMS_ACTIVE.labels(provider=provider_name).inc()
        start = time.monotonic()
        try:
            async with aclosing(stream), asyncio.timeout_at(deadline):
                async for chunk in stream:
                    chunks += 1
                    STREAM_CHUNKS_TOTAL.labels(provider=provider_name).inc()
                    yield chunk
        except TimeoutError:
            status = STATUS_TIMEOUT
            logger.warning(
                "%s stream timed out after %s (%d chunks sent)",
                provider_name,
                request_timeout,
                chunks,
            )
            raise
        except (asyncio.CancelledError, GeneratorExit):
            status = STATUS_CANCELLED
            logger.info("%s stream cancelled by client", provider_name)
            raise
        except Exception as e:
            status = STATUS_ERROR
            span.record_exception(e)
            logger.warning(
                "%s stream failed after %d chunks: %s",
                provider_name,
                chunks,
                e,
                exc_info=send_traceback,
            )
            raise
        finally:
            span.set_attribute(ATTR_STREAM_STATUS, status)
            span.set_attribute(ATTR_STREAM_CHUNKS, chunks)
            COMPLETION_STREAMS_ACTIVE.labels(provider=provider_name).dec()
            COMPLETION_STREAMS_TOTAL.labels(
                provider=provider_name, status=status
            ).inc()
            COMPLETION_STREAM_DURATION_SECONDS.labels(provider=provider_name).observe(
                time.monotonic() - start
            )
