"""
Test fixtures for the interaction controller and Telegram front end.

The controller runs against real collaborators: a JSON file metadata store
in a temp dir, and the catalog pager and retrieval broker over a
StorageApiClient whose transport is an in-memory fake of the storage
service.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import pytest_asyncio

from nilbot.api.client import StorageApiClient
from nilbot.bot.controller import InteractionController
from nilbot.bot.render import (
    Renderer,
    RenderErrorText,
    RenderPhoto,
    RenderPhotoGroup,
    RenderRequest,
    RenderText,
)
from nilbot.catalog.pager import CatalogPager
from nilbot.config import Config
from nilbot.errors import RenderError
from nilbot.media.thumbnail import ThumbnailCompressor
from nilbot.retrieval.broker import RetrievalBroker
from nilbot.store.local import JsonFileMetadataStore

APP_ID = "app-test"


class FakeStorageService:
    """In-memory storage service: a paged catalog plus secrets by store id."""

    def __init__(self) -> None:
        self.catalog: list[dict] = []
        self.secrets: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, text="boom")
        path = request.url.path
        if path.endswith("/store_ids"):
            page = int(request.url.params["page"])
            size = int(request.url.params["page_size"])
            items = self.catalog[(page - 1) * size : page * size]
            return httpx.Response(200, json={"store_ids": items})
        if "/secret/retrieve/" in path:
            store_id = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"secret": self.secrets.get(store_id)})
        return httpx.Response(404, json={"detail": "not found"})

    def retrieve_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/secret/retrieve/" in r.url.path]


class RecordingRenderer(Renderer):
    """Collects render requests instead of displaying them."""

    def __init__(self) -> None:
        self.requests: list[RenderRequest] = []

    async def render(self, request: RenderRequest) -> None:
        self.requests.append(request)

    def of_type(self, kind: type) -> list:
        return [r for r in self.requests if isinstance(r, kind)]

    @property
    def texts(self) -> list[str]:
        return [r.text for r in self.requests if isinstance(r, RenderText)]

    @property
    def errors(self) -> list[str]:
        return [r.text for r in self.requests if isinstance(r, RenderErrorText)]


class RejectingRenderer(RecordingRenderer):
    """Fails the way the Telegram adapter does when Telegram rejects a photo."""

    def __init__(self, rejected: type) -> None:
        super().__init__()
        self.rejected = rejected

    async def render(self, request: RenderRequest) -> None:
        if isinstance(request, self.rejected):
            raise RenderError("bad photo", user_message="Could not process the retrieved image")
        await super().render(request)


@pytest.fixture
def bot_config(tmp_path: Path) -> Config:
    return Config(
        environment="development",
        api_base="https://storage.test/api",
        app_id=APP_ID,
        page_size=5,
        db_path=tmp_path / "db.json",
        bot_token="123456:test-token",
    )


@pytest.fixture
def service() -> FakeStorageService:
    return FakeStorageService()


@pytest_asyncio.fixture
async def api_client(bot_config, service):
    client = StorageApiClient(bot_config.api_base, transport=httpx.MockTransport(service.handler))
    yield client
    await client.close()


@pytest.fixture
def store(bot_config) -> JsonFileMetadataStore:
    return JsonFileMetadataStore(bot_config.db_path)


@pytest.fixture
def controller(bot_config, store, api_client) -> InteractionController:
    return InteractionController(
        bot_config,
        store,
        CatalogPager(api_client),
        RetrievalBroker(api_client),
        ThumbnailCompressor(),
    )


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def photo_rejecting_renderer() -> RejectingRenderer:
    return RejectingRenderer(RenderPhoto)


@pytest.fixture
def group_rejecting_renderer() -> RejectingRenderer:
    return RejectingRenderer(RenderPhotoGroup)


@pytest.fixture
def mock_bot():
    """Patch aiogram Bot and Dispatcher so TelegramBot can be built offline."""
    with (
        patch("nilbot.bot.telegram.Bot") as MockBot,
        patch("nilbot.bot.telegram.Dispatcher") as MockDP,
    ):
        bot_instance = MagicMock()
        bot_instance.send_message = AsyncMock()
        bot_instance.send_photo = AsyncMock()
        bot_instance.send_media_group = AsyncMock()
        bot_instance.edit_message_reply_markup = AsyncMock()
        bot_instance.set_my_commands = AsyncMock()
        bot_instance.session = MagicMock()
        bot_instance.session.close = AsyncMock()
        MockBot.return_value = bot_instance

        dp_instance = MagicMock()
        dp_instance.message = MagicMock(return_value=lambda f: f)
        dp_instance.callback_query = MagicMock(return_value=lambda f: f)
        dp_instance.start_polling = AsyncMock()
        MockDP.return_value = dp_instance

        yield bot_instance, dp_instance
