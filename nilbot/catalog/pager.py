"""
Catalog pager — one page of the remote store-id catalog at a time.

Pages are 0-indexed here and 1-indexed on the wire. The service does not say
whether more pages exist, so ``has_next_page`` is a heuristic: a full page
means there may be another one. An empty page is a valid result ("no items"
or "past the last page").

Controls are presentation-agnostic (label + action token); the Telegram
adapter turns them into inline keyboard buttons. Action tokens:

    page_<N>    — navigate to 0-indexed page N
    store_<ID>  — select the entry with store id ID
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from nilbot.api.client import StorageApiClient
from nilbot.errors import RemoteServiceError
from nilbot.store.models import ContentType

logger = logging.getLogger(__name__)

PAGE_PREFIX = "page_"
STORE_PREFIX = "store_"
PREVIOUS_LABEL = "\u2b05\ufe0f Previous"
NEXT_LABEL = "\u27a1\ufe0f Next"


@dataclass(frozen=True)
class CatalogItem:
    store_id: str
    secret_name: str
    content_type: ContentType | None = None


@dataclass
class CatalogPage:
    """One fetched page of the remote catalog."""

    page_index: int
    page_size: int
    items: list[CatalogItem] = field(default_factory=list)

    @property
    def has_next_page(self) -> bool:
        return len(self.items) == self.page_size

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 0

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class Control:
    """A selectable control: display label plus opaque action token."""

    label: str
    action: str


@dataclass(frozen=True)
class Action:
    """A parsed action token."""

    kind: str  # "page" or "store"
    value: str

    @property
    def page_index(self) -> int:
        return int(self.value)


def parse_action(token: str) -> Action | None:
    """Parse ``page_<N>`` / ``store_<ID>``. Returns None for anything else."""
    if token.startswith(PAGE_PREFIX):
        value = token.removeprefix(PAGE_PREFIX)
        if value.isdigit():
            return Action("page", value)
        return None
    if token.startswith(STORE_PREFIX):
        value = token.removeprefix(STORE_PREFIX)
        if value:
            return Action("store", value)
    return None


def _parse_item(raw: object) -> CatalogItem:
    if not isinstance(raw, dict) or not raw.get("store_id"):
        raise RemoteServiceError(f"Malformed catalog item: {raw!r}")
    store_id = raw["store_id"]
    hint = raw.get("content_type")
    try:
        content_type = ContentType(hint) if hint else None
    except ValueError:
        content_type = None
    return CatalogItem(
        store_id=str(store_id),
        secret_name=str(raw.get("secret_name") or store_id),
        content_type=content_type,
    )


class CatalogPager:
    """Fetches catalog pages from the storage service."""

    def __init__(self, client: StorageApiClient) -> None:
        self.client = client

    async def fetch_page(self, app_id: str, page_index: int, page_size: int) -> CatalogPage:
        """Fetch one page. RemoteServiceError propagates to the caller."""
        if page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {page_index}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        raw_items = await self.client.list_store_ids(app_id, page_index + 1, page_size)
        items = [_parse_item(raw) for raw in raw_items]
        logger.debug("Catalog page %d for app %s: %d items", page_index, app_id, len(items))
        return CatalogPage(page_index=page_index, page_size=page_size, items=items)


def build_controls(page: CatalogPage) -> list[list[Control]]:
    """One row per item, in service order, then a navigation row if any."""
    rows = [[Control(item.secret_name, f"{STORE_PREFIX}{item.store_id}")] for item in page.items]
    nav: list[Control] = []
    if page.has_previous_page:
        nav.append(Control(PREVIOUS_LABEL, f"{PAGE_PREFIX}{page.page_index - 1}"))
    if page.has_next_page:
        nav.append(Control(NEXT_LABEL, f"{PAGE_PREFIX}{page.page_index + 1}"))
    if nav:
        rows.append(nav)
    return rows
