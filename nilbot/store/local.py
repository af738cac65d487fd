"""
File-backed metadata store — one JSON document for every user.

Document layout:
    {"users": {"<userKey>": {"userKey": ..., "appIds": [...], "storeIds": [...],
                             "createdAt": ..., "lastUpdated": ...}}}

Every mutating call reads the whole document, changes it in memory and writes
it back in full. There is no locking: concurrent writers lose updates
(last write wins for the whole document). Intended for single-instance
development deployments.

File I/O is synchronous and runs in the default executor, the same pattern
the async wrappers in the rest of the codebase use.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from nilbot.errors import PersistenceError
from nilbot.store.base import MetadataStore
from nilbot.store.models import StoreEntry, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _empty_document() -> dict[str, Any]:
    return {"users": {}}


class JsonFileMetadataStore(MetadataStore):
    """Metadata store persisted as a single JSON file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    # ── Sync document I/O ──

    def read_document(self) -> dict[str, Any]:
        """Read the whole document. Missing or malformed files read as empty."""
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return _empty_document()
        except (OSError, ValueError) as e:
            logger.warning("Metadata file %s unreadable, starting empty: %s", self.path, e)
            return _empty_document()
        if not isinstance(data, dict) or not isinstance(data.get("users"), dict):
            logger.warning("Metadata file %s has unexpected layout, starting empty", self.path)
            return _empty_document()
        return data

    def write_document(self, data: dict[str, Any]) -> None:
        """Write the whole document atomically (temp file + rename)."""
        directory = self.path.parent if str(self.path.parent) else Path(".")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write metadata file {self.path}: {e}") from e

    def _load_user(self, data: dict[str, Any], user_key: str) -> User | None:
        raw = data["users"].get(user_key)
        if raw is None:
            return None
        try:
            return User.model_validate(raw)
        except ValidationError as e:
            raise PersistenceError(f"Corrupt record for user {user_key}: {e}") from e

    def _mutate(self, user_key: str, change: Callable[[User], T]) -> T:
        """Read-modify-write one user's record, creating it on first write."""
        data = self.read_document()
        user = self._load_user(data, user_key) or User(user_key=user_key)
        result = change(user)
        user.touch()
        data["users"][user_key] = user.to_document()
        self.write_document(data)
        return result

    # ── Sync operations ──

    def _append_store_entry(self, user_key: str, entry: StoreEntry) -> StoreEntry:
        self._mutate(user_key, lambda user: user.store_ids.append(entry))
        logger.debug("Saved store ID %s for user %s", entry.store_id, user_key)
        return entry

    def _list_store_entries(self, user_key: str) -> list[StoreEntry]:
        user = self._load_user(self.read_document(), user_key)
        return list(user.store_ids) if user else []

    def _remove_store_entry(self, user_key: str, store_id: str) -> None:
        data = self.read_document()
        user = self._load_user(data, user_key)
        if user is None:
            return
        user.store_ids = [e for e in user.store_ids if e.store_id != store_id]
        user.touch()
        data["users"][user_key] = user.to_document()
        self.write_document(data)
        logger.debug("Removed store ID %s for user %s", store_id, user_key)

    def _append_app_id(self, user_key: str, app_id: str) -> None:
        self._mutate(user_key, lambda user: user.app_ids.append(app_id))
        logger.debug("Saved app ID %s for user %s", app_id, user_key)

    def _current_app_id(self, user_key: str) -> str | None:
        user = self._load_user(self.read_document(), user_key)
        return user.current_app_id if user else None

    def get_user(self, user_key: str) -> User | None:
        """Return the full user aggregate (local backend only)."""
        return self._load_user(self.read_document(), user_key)

    # ── Async interface ──

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args))

    async def append_store_entry(self, user_key: str, entry: StoreEntry) -> StoreEntry:
        return await self._run(self._append_store_entry, user_key, entry)

    async def list_store_entries(self, user_key: str) -> list[StoreEntry]:
        return await self._run(self._list_store_entries, user_key)

    async def remove_store_entry(self, user_key: str, store_id: str) -> None:
        await self._run(self._remove_store_entry, user_key, store_id)

    async def append_app_id(self, user_key: str, app_id: str) -> None:
        await self._run(self._append_app_id, user_key, app_id)

    async def current_app_id(self, user_key: str) -> str | None:
        return await self._run(self._current_app_id, user_key)

