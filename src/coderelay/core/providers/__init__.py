"""Upstream completion providers (Gemini, OpenAI-compatible)."""

from .base import ChatProvider, ProviderNotConfigured  # noqa: F401
from .deps import (  # noqa: F401
    ProviderFactory,
    build_providers,
    get_provider_factory,
    is_gemini_model,
)
from .gemini import GeminiProvider, to_gemini_request  # noqa: F401
from .openrouter import OpenRouterProvider, to_openai_messages  # noqa: F401
