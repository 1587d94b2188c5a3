"""Unit tests for SSE framing and stream relay."""

import asyncio
import json
from datetime import timedelta

import pytest

from coderelay.core.sse import (
    SSE_DONE,
    CompletionChunk,
    format_sse,
    frame_deltas,
    open_stream,
    relay_stream,
    stream_deadline,
)


async def _async_iter(items):
    """Helper to create an async generator from a list."""
    for item in items:
        yield item


async def _failing_after(items, exc):
    for item in items:
        yield item
    raise exc


def _event(text: str) -> bytes:
    return b'data: {"choices":[{"delta":{"content":"' + text.encode() + b'"}}]}\n\n'


# ---------------------------------------------------------------------------
# format_sse / CompletionChunk
# ---------------------------------------------------------------------------


class TestFormatSSE:
    def test_chunk_shape(self):
        raw = format_sse(CompletionChunk.from_text("hi"))
        assert raw.startswith(b"data: ")
        assert raw.endswith(b"\n\n")
        assert json.loads(raw[len(b"data: ") :]) == {
            "choices": [{"delta": {"content": "hi"}}]
        }

    def test_escapes_json_special_characters(self):
        raw = format_sse(CompletionChunk.from_text('say "hi"\n'))
        payload = json.loads(raw[len(b"data: ") :])
        assert payload["choices"][0]["delta"]["content"] == 'say "hi"\n'

    def test_non_ascii_round_trips(self):
        raw = format_sse(CompletionChunk.from_text("héllo ✓"))
        payload = json.loads(raw[len(b"data: ") :].decode("utf-8"))
        assert payload["choices"][0]["delta"]["content"] == "héllo ✓"


# ---------------------------------------------------------------------------
# frame_deltas
# ---------------------------------------------------------------------------


class TestFrameDeltas:
    @pytest.mark.asyncio
    async def test_two_deltas_then_done(self):
        events = [e async for e in frame_deltas(_async_iter(["He", "llo"]))]
        assert events == [_event("He"), _event("llo"), SSE_DONE]

    @pytest.mark.asyncio
    async def test_empty_deltas_skipped(self):
        events = [e async for e in frame_deltas(_async_iter(["", "a", "", "b"]))]
        assert events == [_event("a"), _event("b"), SSE_DONE]

    @pytest.mark.asyncio
    async def test_empty_stream_only_done(self):
        events = [e async for e in frame_deltas(_async_iter([]))]
        assert events == [SSE_DONE]

    @pytest.mark.asyncio
    async def test_upstream_error_propagates_without_done(self):
        received = []
        with pytest.raises(RuntimeError, match="upstream broke"):
            async for event in frame_deltas(
                _failing_after(["partial"], RuntimeError("upstream broke"))
            ):
                received.append(event)
        assert received == [_event("partial")]
        assert SSE_DONE not in received


# ---------------------------------------------------------------------------
# relay_stream
# ---------------------------------------------------------------------------


class TestRelayStream:
    @pytest.mark.asyncio
    async def test_relays_chunks_in_order(self):
        chunks = [b"data: 1\n\n", b"data: 2\n\n", SSE_DONE]
        relayed = [
            c
            async for c in relay_stream(
                _async_iter(chunks),
                provider_name="test",
                request_timeout=timedelta(seconds=5),
            )
        ]
        assert relayed == chunks

    @pytest.mark.asyncio
    async def test_error_is_reraised(self):
        received = []
        with pytest.raises(ValueError):
            async for chunk in relay_stream(
                _failing_after([b"a"], ValueError("boom")),
                provider_name="test",
                request_timeout=timedelta(seconds=5),
            ):
                received.append(chunk)
        assert received == [b"a"]

    @pytest.mark.asyncio
    async def test_timeout_aborts_stream(self):
        async def slow():
            yield b"first"
            await asyncio.sleep(5)
            yield b"never"

        received = []
        with pytest.raises(TimeoutError):
            async for chunk in relay_stream(
                slow(),
                provider_name="test",
                request_timeout=timedelta(milliseconds=50),
            ):
                received.append(chunk)
        assert received == [b"first"]

    @pytest.mark.asyncio
    async def test_upstream_closed_when_client_goes_away(self):
        closed = []

        async def upstream():
            try:
                yield b"a"
                yield b"b"
            finally:
                closed.append(True)

        relay = relay_stream(
            upstream(), provider_name="test", request_timeout=timedelta(seconds=5)
        )
        assert await anext(relay) == b"a"
        await relay.aclose()

        assert closed == [True]

    @pytest.mark.asyncio
    async def test_shared_deadline_already_spent(self):
        deadline = stream_deadline(timedelta(seconds=0))

        async def slow():
            await asyncio.sleep(1)
            yield b"late"

        with pytest.raises(TimeoutError):
            async for _ in relay_stream(
                slow(),
                provider_name="test",
                request_timeout=timedelta(seconds=5),
                deadline=deadline,
            ):
                pass


# ---------------------------------------------------------------------------
# open_stream
# ---------------------------------------------------------------------------


class TestOpenStream:
    @pytest.mark.asyncio
    async def test_returns_opened_stream(self):
        async def opening():
            return _async_iter([b"x"])

        stream = await open_stream(
            opening(),
            provider_name="test",
            deadline=stream_deadline(timedelta(seconds=5)),
        )
        assert [c async for c in stream] == [b"x"]

    @pytest.mark.asyncio
    async def test_refusal_is_reraised(self):
        async def opening():
            raise PermissionError("401 Unauthorized")

        with pytest.raises(PermissionError):
            await open_stream(
                opening(),
                provider_name="test",
                deadline=stream_deadline(timedelta(seconds=5)),
            )

    @pytest.mark.asyncio
    async def test_slow_open_times_out(self):
        async def opening():
            await asyncio.sleep(5)

        with pytest.raises(TimeoutError):
            await open_stream(
                opening(),
                provider_name="test",
                deadline=stream_deadline(timedelta(milliseconds=50)),
            )
