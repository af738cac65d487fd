"""Tests for the catalog pager and its action tokens."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from nilbot.catalog.pager import (
    NEXT_LABEL,
    PREVIOUS_LABEL,
    CatalogItem,
    CatalogPage,
    CatalogPager,
    build_controls,
    parse_action,
)
from nilbot.errors import RemoteServiceError
from nilbot.store.models import ContentType


def _page(page_index: int, n: int, page_size: int = 5) -> CatalogPage:
    items = [CatalogItem(f"sid-{i}", f"name-{i}") for i in range(n)]
    return CatalogPage(page_index=page_index, page_size=page_size, items=items)


@pytest.fixture
def client():
    c = MagicMock()
    c.list_store_ids = AsyncMock(return_value=[])
    return c


class TestCatalogPage:
    def test_full_page_may_have_next(self):
        assert _page(0, 5).has_next_page

    def test_short_page_has_no_next(self):
        assert not _page(0, 4).has_next_page

    def test_empty_page(self):
        page = _page(3, 0)
        assert page.is_empty
        assert not page.has_next_page

    def test_previous(self):
        assert not _page(0, 5).has_previous_page
        assert _page(1, 5).has_previous_page


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_wire_page_is_one_indexed(self, client):
        await CatalogPager(client).fetch_page("app-1", 0, 5)
        client.list_store_ids.assert_awaited_once_with("app-1", 1, 5)

    @pytest.mark.asyncio
    async def test_items_in_service_order(self, client):
        client.list_store_ids.return_value = [
            {"store_id": "b", "secret_name": "second"},
            {"store_id": "a", "secret_name": "first", "content_type": "image"},
        ]

        page = await CatalogPager(client).fetch_page("app-1", 2, 5)

        assert page.page_index == 2
        assert [i.store_id for i in page.items] == ["b", "a"]
        assert page.items[1].content_type is ContentType.IMAGE
        assert page.items[0].content_type is None

    @pytest.mark.asyncio
    async def test_name_defaults_to_store_id(self, client):
        client.list_store_ids.return_value = [{"store_id": "a"}]
        page = await CatalogPager(client).fetch_page("app-1", 0, 5)
        assert page.items[0].secret_name == "a"

    @pytest.mark.asyncio
    async def test_unknown_content_type_dropped(self, client):
        client.list_store_ids.return_value = [{"store_id": "a", "content_type": "video"}]
        page = await CatalogPager(client).fetch_page("app-1", 0, 5)
        assert page.items[0].content_type is None

    @pytest.mark.asyncio
    async def test_malformed_item(self, client):
        client.list_store_ids.return_value = [{"secret_name": "no id"}]
        with pytest.raises(RemoteServiceError):
            await CatalogPager(client).fetch_page("app-1", 0, 5)

    @pytest.mark.asyncio
    async def test_remote_error_propagates(self, client):
        client.list_store_ids.side_effect = RemoteServiceError("down")
        with pytest.raises(RemoteServiceError):
            await CatalogPager(client).fetch_page("app-1", 0, 5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_index,page_size", [(-1, 5), (0, 0)])
    async def test_invalid_arguments(self, client, page_index, page_size):
        with pytest.raises(ValueError):
            await CatalogPager(client).fetch_page("app-1", page_index, page_size)
        client.list_store_ids.assert_not_awaited()


class TestBuildControls:
    def test_one_row_per_item(self):
        rows = build_controls(_page(0, 2))
        assert [[(c.label, c.action) for c in row] for row in rows] == [
            [("name-0", "store_sid-0")],
            [("name-1", "store_sid-1")],
        ]

    def test_first_full_page(self):
        nav = build_controls(_page(0, 5))[-1]
        assert [(c.label, c.action) for c in nav] == [(NEXT_LABEL, "page_1")]

    def test_middle_page(self):
        nav = build_controls(_page(2, 5))[-1]
        assert [(c.label, c.action) for c in nav] == [
            (PREVIOUS_LABEL, "page_1"),
            (NEXT_LABEL, "page_3"),
        ]

    def test_last_short_page(self):
        nav = build_controls(_page(2, 3))[-1]
        assert [(c.label, c.action) for c in nav] == [(PREVIOUS_LABEL, "page_1")]

    def test_single_short_page_has_no_nav(self):
        rows = build_controls(_page(0, 3))
        assert len(rows) == 3


class TestParseAction:
    def test_page(self):
        action = parse_action("page_3")
        assert action.kind == "page"
        assert action.page_index == 3

    def test_store(self):
        action = parse_action("store_abc-123")
        assert action.kind == "store"
        assert action.value == "abc-123"

    def test_store_id_may_contain_prefix_chars(self):
        assert parse_action("store_page_1").value == "page_1"

    @pytest.mark.parametrize("token", ["", "page_", "page_-1", "page_x", "store_", "other_1"])
    def test_invalid(self, token):
        assert parse_action(token) is None
