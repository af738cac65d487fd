"""
Test fixtures for the metadata store backends.

The KV backend is exercised against an in-memory stand-in exposing the
subset of the redis.asyncio client the store calls (get, set, aclose).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nilbot.store.kv import RedisMetadataStore
from nilbot.store.local import JsonFileMetadataStore


class FakeRedis:
    """In-memory async key-value client with decode_responses semantics."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.closed = False
        self.fail_with: Exception | None = None

    async def get(self, key: str) -> str | None:
        if self.fail_with:
            raise self.fail_with
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        if self.fail_with:
            raise self.fail_with
        self.data[key] = value
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def kv_store(fake_redis) -> RedisMetadataStore:
    return RedisMetadataStore(fake_redis)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db.json"


@pytest.fixture
def local_store(db_path) -> JsonFileMetadataStore:
    return JsonFileMetadataStore(db_path)


@pytest.fixture(params=["local", "kv"])
def any_store(request, local_store, kv_store):
    """Both backends, for behavior that must be identical across them."""
    return local_store if request.param == "local" else kv_store
