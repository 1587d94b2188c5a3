"""Centralized FastAPI dependency type aliases.

Each alias corresponds to a single ``get_*`` factory and can be
overridden in tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from coderelay.configs.config import get_api_config, get_history_config
from coderelay.configs.system import APIConfig, HistoryConfig
from coderelay.core.providers import ProviderFactory, get_provider_factory
from coderelay.infra.db import MessageRepository, get_message_repository

APIConfigDep = Annotated[APIConfig, Depends(get_api_config)]
HistoryConfigDep = Annotated[HistoryConfig, Depends(get_history_config)]
MessageRepositoryDep = Annotated[MessageRepository, Depends(get_message_repository)]
ProviderFactoryDep = Annotated[ProviderFactory, Depends(get_provider_factory)]
