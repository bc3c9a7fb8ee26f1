"""Resolve run-time settings from config plus the stored settings record.

A stored ``AppSettings`` record (when present) overrides the YAML/env values for
chunk sizes, the model name and the API key.
"""

from __future__ import annotations

from loguru import logger

from src.storage.memory_store import MemoryStore
from src.utils.config import ChunkingConfig, Config
from src.utils.llm_client import ClientCache, LLMClient

SETTINGS_ID = "settings"


def effective_chunking(config: Config, store: MemoryStore) -> ChunkingConfig:
    settings = store.settings.get(SETTINGS_ID)
    if settings is None:
        return config.chunking
    return ChunkingConfig(
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        break_search_window=config.chunking.break_search_window,
    )


def build_llm_client(config: Config, store: MemoryStore, cache: ClientCache) -> LLMClient:
    """Create a client for the configured provider using the effective credential."""
    llm_config = config.llm
    api_key = config.api_key_for(llm_config.provider)

    if llm_config.provider == "openai" and not llm_config.base_url and config.openai_base_url:
        llm_config = llm_config.model_copy(update={"base_url": config.openai_base_url})

    settings = store.settings.get(SETTINGS_ID)
    if settings is not None:
        llm_config = llm_config.model_copy(update={"model": settings.model})
        if settings.api_key:
            api_key = settings.api_key

    logger.debug(f"Using {llm_config.provider}:{llm_config.model}")
    return LLMClient(llm_config, api_key=api_key or None, cache=cache)
