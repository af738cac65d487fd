"""Behavior shared by both metadata store backends."""

from __future__ import annotations

import pytest

from nilbot.store.models import ContentType, StoreEntry


def _entry(store_id: str, name: str | None = None, **kwargs) -> StoreEntry:
    return StoreEntry(store_id=store_id, secret_name=name or f"name-{store_id}", **kwargs)


class TestStoreEntries:
    @pytest.mark.asyncio
    async def test_unknown_user_has_no_entries(self, any_store):
        assert await any_store.list_store_entries("nobody") == []

    @pytest.mark.asyncio
    async def test_append_preserves_order(self, any_store):
        for store_id in ("a", "b", "c"):
            await any_store.append_store_entry("u1", _entry(store_id))

        entries = await any_store.list_store_entries("u1")
        assert [e.store_id for e in entries] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_append_returns_entry(self, any_store):
        entry = _entry("a", "photo", content_type=ContentType.IMAGE, thumbnail="AAAA")
        assert await any_store.append_store_entry("u1", entry) == entry

    @pytest.mark.asyncio
    async def test_fields_round_trip(self, any_store):
        entry = _entry("a", "photo", content_type=ContentType.IMAGE, thumbnail="AAAA")
        await any_store.append_store_entry("u1", entry)

        stored = (await any_store.list_store_entries("u1"))[0]
        assert stored.secret_name == "photo"
        assert stored.content_type is ContentType.IMAGE
        assert stored.thumbnail == "AAAA"
        assert stored.created_at == entry.created_at

    @pytest.mark.asyncio
    async def test_duplicates_are_kept(self, any_store):
        await any_store.append_store_entry("u1", _entry("a", "first"))
        await any_store.append_store_entry("u1", _entry("a", "second"))

        entries = await any_store.list_store_entries("u1")
        assert [e.secret_name for e in entries] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_find_returns_first_match(self, any_store):
        await any_store.append_store_entry("u1", _entry("a", "first"))
        await any_store.append_store_entry("u1", _entry("a", "second"))

        found = await any_store.find_store_entry("u1", "a")
        assert found is not None
        assert found.secret_name == "first"
        assert await any_store.find_store_entry("u1", "zzz") is None

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, any_store):
        await any_store.append_store_entry("u1", _entry("a"))
        await any_store.append_store_entry("u2", _entry("b"))

        assert [e.store_id for e in await any_store.list_store_entries("u1")] == ["a"]
        assert [e.store_id for e in await any_store.list_store_entries("u2")] == ["b"]


class TestRemoveStoreEntry:
    @pytest.mark.asyncio
    async def test_removes_every_matching_entry(self, any_store):
        for store_id in ("a", "b", "a"):
            await any_store.append_store_entry("u1", _entry(store_id))

        await any_store.remove_store_entry("u1", "a")

        entries = await any_store.list_store_entries("u1")
        assert [e.store_id for e in entries] == ["b"]

    @pytest.mark.asyncio
    async def test_missing_store_id_is_noop(self, any_store):
        await any_store.append_store_entry("u1", _entry("a"))
        await any_store.remove_store_entry("u1", "zzz")
        assert len(await any_store.list_store_entries("u1")) == 1

    @pytest.mark.asyncio
    async def test_unknown_user_is_noop(self, any_store):
        await any_store.remove_store_entry("nobody", "a")
        assert await any_store.list_store_entries("nobody") == []


class TestAppIds:
    @pytest.mark.asyncio
    async def test_no_app_id(self, any_store):
        assert await any_store.current_app_id("u1") is None

    @pytest.mark.asyncio
    async def test_most_recent_wins(self, any_store):
        await any_store.append_app_id("u1", "app-1")
        await any_store.append_app_id("u1", "app-2")
        assert await any_store.current_app_id("u1") == "app-2"

    @pytest.mark.asyncio
    async def test_app_id_does_not_touch_entries(self, any_store):
        await any_store.append_store_entry("u1", _entry("a"))
        await any_store.append_app_id("u1", "app-1")
        assert [e.store_id for e in await any_store.list_store_entries("u1")] == ["a"]
