"""
Interaction controller — list, navigate, select and retrieve secrets.

Presentation-agnostic: every handler takes a Renderer bound to the chat the
event came from and emits render requests into it. Per-chat state:

    IDLE ──list──▶ LIST_REQUESTED ──page 0 ok──▶ PAGE_DISPLAYED
    PAGE_DISPLAYED ──page_N──▶ PAGE_DISPLAYED
    PAGE_DISPLAYED ──store_ID──▶ ITEM_SELECTED ──▶ IDLE

Every error is caught here and turned into a chat message. Identification
and not-found errors are shown with their own text; remote-service and
persistence failures are logged with detail and shown generically. Nothing
is retried.
"""

from __future__ import annotations

import asyncio
import binascii
import logging
from enum import StrEnum

from nilbot.bot.render import (
    Renderer,
    RenderList,
    RenderPhoto,
    RenderPhotoGroup,
)
from nilbot.catalog.pager import CatalogPager, build_controls, parse_action
from nilbot.config import Config
from nilbot.errors import (
    IdentificationError,
    ImageProcessingError,
    NotFoundError,
    RenderError,
)
from nilbot.media.thumbnail import ThumbnailCompressor, decode_base64
from nilbot.retrieval.broker import RetrievalBroker
from nilbot.store.base import MetadataStore
from nilbot.store.models import ContentType, StoreEntry

logger = logging.getLogger(__name__)

# ── Messages ──

LIST_TITLE = "\U0001f4cb Store IDs:"
THUMBNAILS_TITLE = "\U0001f5bc\ufe0f Your stored image thumbnails:"
NO_THUMBNAILS_TITLE = "\U0001f4f8 Images without thumbnails:\n"
NO_ITEMS = "No stored items found."
NO_MORE_ITEMS = "No more items found."
STORE_ID_NOT_FOUND = "Store ID not found"
NO_ACCOUNT = "Please create an account first using /register"
LIST_FAILED = "An error occurred while listing stored items."
NAVIGATE_FAILED = "An error occurred while navigating pages."
RETRIEVE_FAILED = "An error occurred while retrieving the secret."
DISPLAY_FAILED = "Secret retrieved but could not be displayed"


class InteractionState(StrEnum):
    IDLE = "idle"
    LIST_REQUESTED = "list_requested"
    PAGE_DISPLAYED = "page_displayed"
    ITEM_SELECTED = "item_selected"


def _error_text(error: Exception, generic: str, retrieval: bool = False) -> str:
    """User-facing text for an error caught at the controller boundary.

    Display failures only mention a retrieved secret on the retrieval paths.
    """
    if isinstance(error, RenderError):
        return f"{DISPLAY_FAILED}: {error.user_message}" if retrieval else generic
    if isinstance(error, (IdentificationError, NotFoundError)):
        return error.user_message
    return generic


class InteractionController:
    """Orchestrates pager, metadata store, broker and thumbnails for chat events."""

    def __init__(
        self,
        config: Config,
        store: MetadataStore,
        pager: CatalogPager,
        broker: RetrievalBroker,
        compressor: ThumbnailCompressor | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.pager = pager
        self.broker = broker
        self.compressor = compressor or ThumbnailCompressor()
        self.page_size = config.page_size
        self._states: dict[str, InteractionState] = {}

    # ── State ──

    def state(self, chat_id: int | str) -> InteractionState:
        return self._states.get(str(chat_id), InteractionState.IDLE)

    def _set_state(self, chat_id: int | str, state: InteractionState) -> InteractionState:
        # IDLE is the default, so idle chats hold no entry.
        if state is InteractionState.IDLE:
            self._states.pop(str(chat_id), None)
        else:
            self._states[str(chat_id)] = state
        return state

    # ── Identity ──

    def resolve_user_seed(self, user_id: int | str | None) -> str:
        """Configured seed wins; otherwise the chat user's id is the seed."""
        if self.config.user_seed:
            return self.config.user_seed
        if user_id is None or str(user_id).strip() == "":
            raise IdentificationError()
        return str(user_id)

    async def resolve_app_id(self, user_key: str) -> str:
        if self.config.app_id:
            return self.config.app_id
        app_id = await self.store.current_app_id(user_key)
        if not app_id:
            raise NotFoundError(NO_ACCOUNT)
        return app_id

    async def _report(
        self,
        renderer: Renderer,
        error: Exception,
        generic: str,
        context: str,
        retrieval: bool = False,
    ) -> None:
        if isinstance(error, (IdentificationError, NotFoundError, RenderError)):
            logger.info("%s: %s", context, error)
        else:
            logger.error("%s: %s", context, error, exc_info=error)
        await renderer.error(_error_text(error, generic, retrieval))

    # ── /list ──

    async def handle_list(
        self, chat_id: int | str, user_id: int | str | None, renderer: Renderer
    ) -> InteractionState:
        """Show catalog page 0, then the user's locally cached image thumbnails."""
        try:
            user_key = self.resolve_user_seed(user_id)
        except IdentificationError as e:
            await renderer.error(e.user_message)
            return self._set_state(chat_id, InteractionState.IDLE)

        self._set_state(chat_id, InteractionState.LIST_REQUESTED)
        try:
            app_id = await self.resolve_app_id(user_key)
            page = await self.pager.fetch_page(app_id, 0, self.page_size)
            if page.is_empty:
                await renderer.text(NO_ITEMS)
                return self._set_state(chat_id, InteractionState.IDLE)

            await renderer.render(RenderList(LIST_TITLE, build_controls(page)))
            self._set_state(chat_id, InteractionState.PAGE_DISPLAYED)

            await self._render_local_images(user_key, renderer)
        except Exception as e:
            await self._report(renderer, e, LIST_FAILED, "Error listing store IDs")
            if self.state(chat_id) is InteractionState.LIST_REQUESTED:
                self._set_state(chat_id, InteractionState.IDLE)
        return self.state(chat_id)

    async def _render_local_images(self, user_key: str, renderer: Renderer) -> None:
        entries = await self.store.list_store_entries(user_key)
        images = [e for e in entries if e.content_type is ContentType.IMAGE]
        if not images:
            return

        await renderer.text(THUMBNAILS_TITLE)

        photos: list[RenderPhoto] = []
        without_thumbnail: list[StoreEntry] = []
        for entry in images:
            data = _decode_thumbnail(entry)
            if data is None:
                without_thumbnail.append(entry)
            else:
                photos.append(RenderPhoto(data=data, caption=f"ID: {entry.secret_name}"))

        if photos:
            await renderer.render(RenderPhotoGroup(photos))

        if without_thumbnail:
            lines = "".join(f"- {entry.store_id}\n" for entry in without_thumbnail)
            await renderer.text(NO_THUMBNAILS_TITLE + lines)

    # ── Callbacks ──

    async def handle_callback(
        self,
        chat_id: int | str,
        user_id: int | str | None,
        token: str,
        renderer: Renderer,
    ) -> InteractionState:
        """Dispatch a ``page_N`` or ``store_ID`` action token."""
        action = parse_action(token)
        if action is None:
            logger.debug("Ignoring unknown callback token %r", token)
            return self.state(chat_id)

        try:
            user_key = self.resolve_user_seed(user_id)
        except IdentificationError as e:
            await renderer.error(e.user_message)
            return self._set_state(chat_id, InteractionState.IDLE)

        if action.kind == "page":
            return await self._navigate(chat_id, user_key, action.page_index, renderer)
        return await self._select(chat_id, user_key, action.value, renderer)

    async def _navigate(
        self, chat_id: int | str, user_key: str, page_index: int, renderer: Renderer
    ) -> InteractionState:
        try:
            app_id = await self.resolve_app_id(user_key)
            page = await self.pager.fetch_page(app_id, page_index, self.page_size)
            if page.is_empty:
                # The displayed list stays as it was.
                await renderer.text(NO_MORE_ITEMS)
                return self.state(chat_id)
            await renderer.render(RenderList(LIST_TITLE, build_controls(page), replace=True))
        except Exception as e:
            await self._report(renderer, e, NAVIGATE_FAILED, "Error fetching paginated data")
            return self.state(chat_id)
        return self._set_state(chat_id, InteractionState.PAGE_DISPLAYED)

    async def _select(
        self, chat_id: int | str, user_key: str, store_id: str, renderer: Renderer
    ) -> InteractionState:
        self._set_state(chat_id, InteractionState.ITEM_SELECTED)
        try:
            entry = await self.store.find_store_entry(user_key, store_id)
            if entry is None:
                await renderer.error(STORE_ID_NOT_FOUND)
            else:
                secret = await self.broker.retrieve(store_id, entry.secret_name, user_key)
                await renderer.render(
                    self.broker.dispatch(secret, entry.secret_name, entry.content_type)
                )
        except Exception as e:
            await self._report(
                renderer, e, f"Error: {RETRIEVE_FAILED}", "Error retrieving value", retrieval=True
            )
        return self._set_state(chat_id, InteractionState.IDLE)

    # ── /retrieve <store_id> <secret_name> ──

    async def handle_retrieve(
        self,
        chat_id: int | str,
        user_id: int | str | None,
        args: list[str],
        renderer: Renderer,
    ) -> None:
        """Retrieve by explicit store id and name; content type is sniffed."""
        try:
            user_key = self.resolve_user_seed(user_id)
            await self.resolve_app_id(user_key)
            if len(args) < 2:
                await renderer.text("Usage: /retrieve <store_id> <secret_name>")
                return
            store_id, secret_name = args[0], args[1]
            secret = await self.broker.retrieve(store_id, secret_name, user_key)
            await renderer.render(self.broker.dispatch(secret, secret_name))
        except Exception as e:
            await self._report(
                renderer, e, RETRIEVE_FAILED, "Error retrieving value", retrieval=True
            )

    # ── /register <app_id> ──

    async def handle_register(
        self,
        chat_id: int | str,
        user_id: int | str | None,
        args: list[str],
        renderer: Renderer,
    ) -> None:
        if not args:
            await renderer.text("Usage: /register <app_id>")
            return
        try:
            user_key = self.resolve_user_seed(user_id)
            await self.store.append_app_id(user_key, args[0])
            current = await self.store.current_app_id(user_key)
            await renderer.text(f"App ID registered: {current}")
        except Exception as e:
            await self._report(
                renderer, e, "An error occurred while saving the app ID.", "Error saving app ID"
            )

    # ── /track <store_id> <secret_name> [text|image] ──

    async def handle_track(
        self,
        chat_id: int | str,
        user_id: int | str | None,
        args: list[str],
        renderer: Renderer,
    ) -> StoreEntry | None:
        """Record local metadata for a secret, with a thumbnail for images.

        The content type is only recorded when given explicitly; untyped
        entries are sniffed at display time.
        """
        if len(args) < 2:
            await renderer.text("Usage: /track <store_id> <secret_name> [text|image]")
            return None
        store_id, secret_name = args[0], args[1]
        content_type: ContentType | None = None
        if len(args) > 2:
            try:
                content_type = ContentType(args[2].lower())
            except ValueError:
                await renderer.text("Content type must be 'text' or 'image'")
                return None

        try:
            user_key = self.resolve_user_seed(user_id)
            thumbnail = None
            if content_type is ContentType.IMAGE:
                secret = await self.broker.retrieve(store_id, secret_name, user_key)
                thumbnail = await self.build_thumbnail(secret, secret_name)
            entry = await self.store.append_store_entry(
                user_key,
                StoreEntry(
                    store_id=store_id,
                    secret_name=secret_name,
                    content_type=content_type,
                    thumbnail=thumbnail,
                ),
            )
        except Exception as e:
            await self._report(
                renderer, e, "An error occurred while saving the store ID.", "Error saving store ID"
            )
            return None

        note = ""
        if content_type is ContentType.IMAGE and not thumbnail:
            note = " (no thumbnail)"
        kind = content_type.value if content_type else "untyped"
        await renderer.text(f"Saved {secret_name} ({store_id}) as {kind}{note}")
        return entry

    async def build_thumbnail(self, image_b64: str, caption: str) -> str | None:
        """Compress off the event loop. None when the image can't be processed."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, lambda: self.compressor.compress_base64(image_b64, caption)
            )
        except ImageProcessingError as e:
            logger.warning("Thumbnail for %r skipped: %s", caption, e)
            return None

    # ── /forget <store_id> ──

    async def handle_forget(
        self,
        chat_id: int | str,
        user_id: int | str | None,
        args: list[str],
        renderer: Renderer,
    ) -> None:
        if not args:
            await renderer.text("Usage: /forget <store_id>")
            return
        try:
            user_key = self.resolve_user_seed(user_id)
            await self.store.remove_store_entry(user_key, args[0])
            await renderer.text(f"Removed {args[0]}")
        except Exception as e:
            await self._report(
                renderer,
                e,
                "An error occurred while removing the store ID.",
                "Error removing store ID",
            )


def _decode_thumbnail(entry: StoreEntry) -> bytes | None:
    if not entry.thumbnail:
        return None
    try:
        return decode_base64(entry.thumbnail)
    except (binascii.Error, ValueError) as e:
        logger.warning("Unreadable thumbnail for %s: %s", entry.store_id, e)
        return None
