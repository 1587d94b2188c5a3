"""Completion streaming endpoint."""

import logging

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from coderelay.core.selection import select_history
from coderelay.core.sse import open_stream, relay_stream, stream_deadline

from .deps import APIConfigDep, HistoryConfigDep, MessageRepositoryDep, ProviderFactoryDep
from .exceptions import MessageNotFound
from .models import CompletionRequest, HealthResponse

logger = logging.getLogger(__name__)

STREAMING_RESPONSE_MEDIA_TYPE = "text/event-stream"
STREAMING_RESPONSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

router = APIRouter(tags=["completion"])


@router.post("/api/get-next-completion-stream-promise")
async def get_next_completion_stream(
    body: CompletionRequest,
    repository: MessageRepositoryDep,
    provider_for: ProviderFactoryDep,
    history_config: HistoryConfigDep,
    api_config: APIConfigDep,
) -> StreamingResponse:
    """Stream the next assistant completion for ``messageId`` as SSE.

    History is everything in the message's chat up to and including it,
    reduced by ``select_history``.  Gemini-routed models get OpenAI-style
    chunks followed by ``data: [DONE]``; other models get the upstream
    stream unchanged.

    The upstream call is made before the response starts, so a refused
    request (bad key, rate limit, unknown model) is a ``500`` rather than
    an empty stream.  Responds ``404`` with an empty body, before any
    upstream call, when the message does not exist.
    """
    target = await repository.get(body.message_id)
    if target is None:
        raise MessageNotFound(body.message_id)

    history = await repository.list_up_to(target.chat_id, target.position)
    messages = select_history(history, history_config)

    provider = provider_for(body.model)
    logger.info(
        "Streaming completion for message %s via %s (model=%s, messages=%d)",
        target.id,
        provider.provider_name,
        body.model,
        len(messages),
    )
    deadline = stream_deadline(api_config.request_timeout)
    stream = await open_stream(
        provider.open(messages),
        provider_name=provider.provider_name,
        deadline=deadline,
        send_traceback=api_config.send_traceback,
    )
    return StreamingResponse(
        relay_stream(
            stream,
            provider_name=provider.provider_name,
            request_timeout=api_config.request_timeout,
            deadline=deadline,
            send_traceback=api_config.send_traceback,
        ),
        media_type=STREAMING_RESPONSE_MEDIA_TYPE,
        headers=STREAMING_RESPONSE_HEADERS,
    )


@router.get("/health")
async def health() -> HealthResponse:
    return HealthResponse()
