"""Gemini provider on the ``google-genai`` async client.

Gemini takes the system prompt as a separate ``system_instruction`` and
knows only ``user`` and ``model`` turns, so the history is reshaped
before submission.  Only the first system message is used as the
instruction; any later system message is dropped.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from google import genai
from google.genai import types
from langchain_core.messages import BaseMessage

from coderelay.configs.system import GeminiConfig
from coderelay.core.sse import frame_deltas
from coderelay.infra.db import ROLE_ASSISTANT, ROLE_SYSTEM, message_role

from .base import ChatProvider

logger = logging.getLogger(__name__)

GEMINI_ROLE_USER = "user"
GEMINI_ROLE_MODEL = "model"


@dataclass
class GeminiRequest:
    """History reshaped for ``generate_content_stream``."""

    contents: list[dict[str, Any]] = field(default_factory=list)
    system_instruction: str | None = None


def to_gemini_request(messages: list[BaseMessage]) -> GeminiRequest:
    """Split the system prompt off and remap roles to ``user`` / ``model``."""
    request = GeminiRequest()
    for msg in messages:
        role = message_role(msg)
        content = str(msg.content)
        if role == ROLE_SYSTEM:
            if request.system_instruction is None:
                request.system_instruction = content
            continue
        request.contents.append(
            {
                "role": GEMINI_ROLE_MODEL if role == ROLE_ASSISTANT else GEMINI_ROLE_USER,
                "parts": [{"text": content}],
            }
        )
    return request


async def _chunk_texts(
    response: AsyncIterator[types.GenerateContentResponse],
) -> AsyncIterator[str]:
    async for chunk in response:
        yield chunk.text or ""


class GeminiProvider(ChatProvider):
    """Streams Gemini deltas re-framed as OpenAI-style SSE chunks."""

    provider_name = "gemini"

    def __init__(self, client: genai.Client, config: GeminiConfig) -> None:
        self._client = client
        self._config = config

    async def open_deltas(self, messages: list[BaseMessage]) -> AsyncIterator[str]:
        """Start the Gemini stream; return the text of each chunk (possibly empty)."""
        request = to_gemini_request(messages)
        logger.info(
            "Gemini request: model=%s turns=%d system_instruction=%s",
            self._config.model_name,
            len(request.contents),
            request.system_instruction is not None,
        )
        response = await self._client.aio.models.generate_content_stream(
            model=self._config.model_name,
            contents=request.contents,
            config=types.GenerateContentConfig(
                system_instruction=request.system_instruction,
            ),
        )
        return _chunk_texts(response)

    async def open(self, messages: list[BaseMessage]) -> AsyncIterator[bytes]:
        return frame_deltas(await self.open_deltas(messages))
