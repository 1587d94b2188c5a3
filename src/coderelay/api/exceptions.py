"""Domain exceptions and their HTTP mapping.

Only an unknown message is mapped to a response.  Stored-row validation
errors and upstream failures are left to FastAPI's default 500 handling.
"""

from fastapi import FastAPI, Request, Response


class MessageNotFound(LookupError):
    """The requested message id does not exist."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"Message {message_id!r} not found.")
        self.message_id = message_id


async def handle_message_not_found(request: Request, exc: MessageNotFound) -> Response:
    return Response(status_code=404)


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on ``app`` (before startup)."""
    app.add_exception_handler(MessageNotFound, handle_message_not_found)  # type: ignore[arg-type]
