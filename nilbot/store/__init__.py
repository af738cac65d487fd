"""
nilbot metadata store — per-user store-entry metadata with two backends.

Public API:
    create_store(config)   → MetadataStore for config.store_backend
    MetadataStore          → backend-agnostic interface
    StoreEntry, User       → data models
"""

from __future__ import annotations

import logging

from nilbot.config import Config
from nilbot.store.base import MetadataStore
from nilbot.store.kv import RedisMetadataStore
from nilbot.store.local import JsonFileMetadataStore
from nilbot.store.models import ContentType, StoreEntry, User

logger = logging.getLogger(__name__)


def create_store(config: Config) -> MetadataStore:
    """Build the metadata store selected by the deployment configuration."""
    if config.store_backend == "kv":
        logger.info("Metadata store: KV service")
        return RedisMetadataStore.from_url(config.redis.connection_url)
    logger.info("Metadata store: local file %s", config.db_path)
    return JsonFileMetadataStore(config.db_path)


__all__ = [
    "ContentType",
    "JsonFileMetadataStore",
    "MetadataStore",
    "RedisMetadataStore",
    "StoreEntry",
    "User",
    "create_store",
]
