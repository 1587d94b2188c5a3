"""OpenAI-compatible provider (OpenRouter) with raw SSE passthrough.

The upstream response is already ``text/event-stream`` in the chunk
format clients expect, terminated by its own ``[DONE]``, so its bytes
are forwarded without parsing.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import Any

import httpx
from langchain_core.messages import BaseMessage
from openai import AsyncAPIResponse, AsyncOpenAI

from coderelay.configs.system import OpenRouterConfig
from coderelay.infra.db import message_role

from .base import ChatProvider

logger = logging.getLogger(__name__)

HEADER_REFERER = "HTTP-Referer"
HEADER_TITLE = "X-Title"


def build_openrouter_client(
    config: OpenRouterConfig,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Create the shared client; retries are disabled."""
    return AsyncOpenAI(
        api_key=config.api_key,
        base_url=config.base_url,
        default_headers={
            HEADER_REFERER: config.referer,
            HEADER_TITLE: config.title,
        },
        timeout=config.timeout.total_seconds(),
        max_retries=0,
        http_client=http_client,
    )


def to_openai_messages(messages: list[BaseMessage]) -> list[dict[str, Any]]:
    """Project the history onto ``{role, content}`` pairs."""
    return [{"role": message_role(m), "content": str(m.content)} for m in messages]


async def _response_bytes(
    response: AsyncAPIResponse[Any], stack: AsyncExitStack
) -> AsyncIterator[bytes]:
    async with stack:
        async for chunk in response.iter_bytes():
            yield chunk


class OpenRouterProvider(ChatProvider):
    """Streams a chat completion for the requested model name."""

    provider_name = "openrouter"

    def __init__(self, client: AsyncOpenAI, config: OpenRouterConfig, model: str) -> None:
        self._client = client
        self._config = config
        self._model = model

    def build_request(self, messages: list[BaseMessage]) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": to_openai_messages(messages),
            "stream": True,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }

    async def open(self, messages: list[BaseMessage]) -> AsyncIterator[bytes]:
        """Send the request; an upstream error status raises here.

        The streaming response stays open until the returned iterator is
        exhausted, fails or is closed.
        """
        request = self.build_request(messages)
        logger.info(
            "OpenRouter request: model=%s messages=%d",
            self._model,
            len(request["messages"]),
        )
        stack = AsyncExitStack()
        response = await stack.enter_async_context(
            self._client.chat.completions.with_streaming_response.create(**request)
        )
        return _response_bytes(response, stack)
