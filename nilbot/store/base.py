"""Abstract interface for the per-user metadata store."""

from __future__ import annotations

from abc import ABC, abstractmethod

from nilbot.store.models import StoreEntry


class MetadataStore(ABC):
    """Per-user record of store-entry metadata.

    Implementations must behave identically for every operation; callers
    never branch on which backend is active. All methods are async so the
    same interface covers network (KV service) and file backends.

    Failures of the underlying storage raise ``PersistenceError``.
    """

    @abstractmethod
    async def append_store_entry(self, user_key: str, entry: StoreEntry) -> StoreEntry:
        """Append an entry. Existing entries with the same store id are kept."""

    @abstractmethod
    async def list_store_entries(self, user_key: str) -> list[StoreEntry]:
        """Return the user's entries in append order. Empty for unknown users."""

    @abstractmethod
    async def remove_store_entry(self, user_key: str, store_id: str) -> None:
        """Remove every entry with ``store_id``. No-op if none match."""

    @abstractmethod
    async def append_app_id(self, user_key: str, app_id: str) -> None:
        """Record ``app_id`` as the user's most recent application id."""

    @abstractmethod
    async def current_app_id(self, user_key: str) -> str | None:
        """Return the most recently appended app id, or None."""

    async def find_store_entry(self, user_key: str, store_id: str) -> StoreEntry | None:
        """Return the first entry with ``store_id``, or None."""
        for entry in await self.list_store_entries(user_key):
            if entry.store_id == store_id:
                return entry
        return None

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
