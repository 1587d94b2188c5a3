"""Abstract completion provider."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from langchain_core.messages import BaseMessage


class ProviderNotConfigured(RuntimeError):
    """The selected provider has no client (missing API key)."""

    def __init__(self, provider_name: str) -> None:
        super().__init__(f"Provider {provider_name!r} is not configured.")
        self.provider_name = provider_name


class ChatProvider(ABC):
    """One upstream completion API.

    ``open`` submits the request and waits for the upstream to accept it,
    then returns the SSE byte stream the client receives.  A refused
    request (bad key, rate limit, unknown model) raises from ``open``,
    before any response headers are sent.  Each implementation owns the
    reshaping of the selected history into its own request schema.
    """

    provider_name: str = ""

    @abstractmethod
    async def open(self, messages: list[BaseMessage]) -> AsyncIterator[bytes]:
        """Submit *messages*; return the lazy SSE-framed byte stream."""
        ...

    async def stream(self, messages: list[BaseMessage]) -> AsyncIterator[bytes]:
        """``open`` and iterate in one step."""
        async for chunk in await self.open(messages):
            yield chunk
