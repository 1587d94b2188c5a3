"""Provider clients (lifespan) and per-request provider selection.

Selection is a closed two-way branch on the requested model name:
names containing ``GeminiConfig.model_marker`` go to Gemini, everything
else goes to the OpenAI-compatible endpoint.
"""

import logging
from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from google import genai

from coderelay.configs.config import AppConfig, get_app_config
from coderelay.infra.lifespan import get_app

from .base import ChatProvider, ProviderNotConfigured
from .gemini import GeminiProvider
from .openrouter import OpenRouterProvider, build_openrouter_client

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], ChatProvider]


def is_gemini_model(model: str, marker: str) -> bool:
    """Case-sensitive containment test on the requested model name."""
    return marker in model


async def build_providers(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Create one client per configured provider, attach to ``app.state``."""
    app.state.gemini_client = None
    app.state.openrouter_client = None

    if config.gemini.api_key:
        app.state.gemini_client = genai.Client(api_key=config.gemini.api_key)
    else:
        logger.warning("Gemini API key not set; Gemini models are unavailable.")

    if config.openrouter.api_key:
        app.state.openrouter_client = build_openrouter_client(config.openrouter)
    else:
        logger.warning("OpenRouter API key not set; non-Gemini models are unavailable.")

    yield

    if app.state.openrouter_client is not None:
        await app.state.openrouter_client.close()
    if app.state.gemini_client is not None:
        await app.state.gemini_client.aio.aclose()


def get_provider_factory(
    request: Request,
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> ProviderFactory:
    """Return ``provider_for(model)`` bound to this app's clients."""
    state = request.app.state

    def provider_for(model: str) -> ChatProvider:
        if is_gemini_model(model, config.gemini.model_marker):
            client = getattr(state, "gemini_client", None)
            if client is None:
                raise ProviderNotConfigured(GeminiProvider.provider_name)
            return GeminiProvider(client, config.gemini)

        client = getattr(state, "openrouter_client", None)
        if client is None:
            raise ProviderNotConfigured(OpenRouterProvider.provider_name)
        return OpenRouterProvider(client, config.openrouter, model)

    return provider_for
