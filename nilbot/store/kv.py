"""
Key-value metadata store — redis.asyncio client against the KV service.

Keys:
  user:<userKey>          — JSON array of store entries (append order)
  user:<userKey>:app_id   — most recent application id (plain string)

Each mutating operation is a GET followed by a SET. No transaction spans the
two, so concurrent writers for the same user key can lose an update.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from nilbot.errors import PersistenceError
from nilbot.store.base import MetadataStore
from nilbot.store.models import StoreEntry

logger = logging.getLogger(__name__)

KEY_PREFIX = "user:"


def entries_key(user_key: str) -> str:
    return f"{KEY_PREFIX}{user_key}"


def app_id_key(user_key: str) -> str:
    return f"{KEY_PREFIX}{user_key}:app_id"


class RedisMetadataStore(MetadataStore):
    """Metadata store backed by a Redis-compatible key-value service."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisMetadataStore:
        import redis.asyncio as aioredis

        return cls(aioredis.Redis.from_url(url, decode_responses=True))

    async def _get_entries(self, user_key: str) -> list[StoreEntry]:
        key = entries_key(user_key)
        try:
            raw = await self._client.get(key)
        except Exception as e:
            raise PersistenceError(f"KV read failed for {key}: {e}") from e
        if not raw:
            return []
        try:
            items = json.loads(raw)
            return [StoreEntry.model_validate(item) for item in items or []]
        except (ValueError, TypeError, ValidationError) as e:
            raise PersistenceError(f"Corrupt entries under {key}: {e}") from e

    async def _set_entries(self, user_key: str, entries: list[StoreEntry]) -> None:
        key = entries_key(user_key)
        payload = json.dumps([e.to_document() for e in entries])
        try:
            await self._client.set(key, payload)
        except Exception as e:
            raise PersistenceError(f"KV write failed for {key}: {e}") from e

    async def append_store_entry(self, user_key: str, entry: StoreEntry) -> StoreEntry:
        entries = await self._get_entries(user_key)
        entries.append(entry)
        await self._set_entries(user_key, entries)
        logger.debug("Saved store ID %s for user %s", entry.store_id, user_key)
        return entry

    async def list_store_entries(self, user_key: str) -> list[StoreEntry]:
        return await self._get_entries(user_key)

    async def remove_store_entry(self, user_key: str, store_id: str) -> None:
        entries = await self._get_entries(user_key)
        remaining = [e for e in entries if e.store_id != store_id]
        if len(remaining) == len(entries):
            return
        await self._set_entries(user_key, remaining)
        logger.debug("Removed store ID %s for user %s", store_id, user_key)

    async def append_app_id(self, user_key: str, app_id: str) -> None:
        key = app_id_key(user_key)
        try:
            await self._client.set(key, app_id)
        except Exception as e:
            raise PersistenceError(f"KV write failed for {key}: {e}") from e
        logger.debug("Saved app ID %s for user %s", app_id, user_key)

    async def current_app_id(self, user_key: str) -> str | None:
        key = app_id_key(user_key)
        try:
            value = await self._client.get(key)
        except Exception as e:
            raise PersistenceError(f"KV read failed for {key}: {e}") from e
        return value or None

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except Exception as e:
            logger.debug("KV client close failed (non-fatal): %s", e)
