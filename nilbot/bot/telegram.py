"""
Telegram Bot — aiogram v3 front end for the interaction controller.

Features:
- /list with an inline keyboard of store ids and Previous/Next navigation
- Inline callbacks ``page_N`` (navigate) and ``store_ID`` (retrieve)
- Batched thumbnail media groups for locally cached image entries
- /retrieve, /register, /track, /forget, /help commands

Messages are sent without a parse mode: secrets are user content and must be
shown verbatim.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from aiogram import Bot, Dispatcher, F
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import (
    BotCommand,
    BufferedInputFile,
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InputMediaPhoto,
    Message,
)

from nilbot.bot.render import (
    Renderer,
    RenderErrorText,
    RenderList,
    RenderPhoto,
    RenderPhotoGroup,
    RenderRequest,
    RenderText,
)
from nilbot.catalog.pager import PAGE_PREFIX, STORE_PREFIX, Control
from nilbot.errors import RenderError

if TYPE_CHECKING:
    from nilbot.bot.controller import InteractionController
    from nilbot.config import Config

logger = logging.getLogger(__name__)

# ── Constants ──

MAX_MESSAGE_LENGTH = 4096
MAX_CAPTION_LENGTH = 1024
MEDIA_GROUP_LIMIT = 10

HELP_TEXT = (
    "Commands\n\n"
    "/list — Browse your stored secrets\n"
    "/retrieve <store_id> <secret_name> — Retrieve a secret\n"
    "/register <app_id> — Register your app ID\n"
    "/track <store_id> <secret_name> [text|image] — Remember a secret locally\n"
    "/forget <store_id> — Forget a remembered secret\n"
    "/help — This message"
)


def build_keyboard(controls: list[list[Control]]) -> InlineKeyboardMarkup:
    """Turn presentation-agnostic control rows into an inline keyboard."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=c.label, callback_data=c.action) for c in row]
            for row in controls
            if row
        ]
    )


def split_message(text: str) -> list[str]:
    """Split text into chunks that fit Telegram's limit, preferring newlines."""
    if len(text) <= MAX_MESSAGE_LENGTH:
        return [text]

    chunks = []
    while text:
        if len(text) <= MAX_MESSAGE_LENGTH:
            chunks.append(text)
            break

        split_pos = text.rfind("\n", 0, MAX_MESSAGE_LENGTH)
        if split_pos == -1 or split_pos < MAX_MESSAGE_LENGTH // 2:
            split_pos = MAX_MESSAGE_LENGTH

        chunks.append(text[:split_pos])
        text = text[split_pos:].lstrip("\n")

    return chunks


def _photo_file(photo: RenderPhoto, index: int = 0) -> BufferedInputFile:
    return BufferedInputFile(photo.data, filename=f"secret_{index}.jpg")


class TelegramRenderer(Renderer):
    """Renders controller output into one Telegram chat.

    ``message`` is the message a callback's keyboard is attached to; list
    requests with ``replace=True`` edit its keyboard in place.
    """

    def __init__(self, bot: Bot, chat_id: int, message: Message | None = None) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.message = message

    async def render(self, request: RenderRequest) -> None:
        try:
            await self._render(request)
        except TelegramAPIError as e:
            if isinstance(request, (RenderPhoto, RenderPhotoGroup)):
                user_message = "Could not process the retrieved image"
            else:
                user_message = "Could not send the message"
            raise RenderError(
                f"Telegram rejected {type(request).__name__}: {e}",
                user_message=user_message,
            ) from e

    async def _render(self, request: RenderRequest) -> None:
        if isinstance(request, (RenderText, RenderErrorText)):
            for chunk in split_message(request.text):
                await self.bot.send_message(chat_id=self.chat_id, text=chunk)
        elif isinstance(request, RenderList):
            keyboard = build_keyboard(request.controls)
            if request.replace and self.message is not None:
                await self.bot.edit_message_reply_markup(
                    chat_id=self.chat_id,
                    message_id=self.message.message_id,
                    reply_markup=keyboard,
                )
            else:
                await self.bot.send_message(
                    chat_id=self.chat_id, text=request.title, reply_markup=keyboard
                )
        elif isinstance(request, RenderPhoto):
            await self.bot.send_photo(
                chat_id=self.chat_id,
                photo=_photo_file(request),
                caption=request.caption[:MAX_CAPTION_LENGTH],
            )
        elif isinstance(request, RenderPhotoGroup):
            await self._send_photo_group(request.photos)
        else:
            raise TypeError(f"Unsupported render request: {request!r}")

    async def _send_photo_group(self, photos: list[RenderPhoto]) -> None:
        # Telegram media groups hold 2-10 items; a lone photo is sent on its own.
        for start in range(0, len(photos), MEDIA_GROUP_LIMIT):
            batch = photos[start : start + MEDIA_GROUP_LIMIT]
            if len(batch) == 1:
                await self.bot.send_photo(
                    chat_id=self.chat_id,
                    photo=_photo_file(batch[0], start),
                    caption=batch[0].caption[:MAX_CAPTION_LENGTH],
                )
                continue
            media = [
                InputMediaPhoto(
                    media=_photo_file(photo, start + i),
                    caption=photo.caption[:MAX_CAPTION_LENGTH],
                )
                for i, photo in enumerate(batch)
            ]
            await self.bot.send_media_group(chat_id=self.chat_id, media=media)


class TelegramBot:
    """Aiogram v3 Telegram bot for nilbot."""

    def __init__(self, config: Config, controller: InteractionController) -> None:
        self.config = config
        self.controller = controller
        self.bot = Bot(token=config.bot_token)
        self.dp = Dispatcher()
        self._setup_handlers()

    def renderer_for(self, chat_id: int, message: Message | None = None) -> TelegramRenderer:
        return TelegramRenderer(self.bot, chat_id, message)

    def _setup_handlers(self) -> None:
        """Register all message and callback handlers."""

        # ── Slash commands ──

        @self.dp.message(CommandStart())
        @self.dp.message(Command("help"))
        async def cmd_help(message: Message) -> None:
            await message.answer(HELP_TEXT)

        @self.dp.message(Command("list"))
        async def cmd_list(message: Message) -> None:
            user_id = message.from_user.id if message.from_user else None
            await self._guarded(
                self.controller.handle_list(
                    message.chat.id, user_id, self.renderer_for(message.chat.id)
                ),
                "list",
            )

        @self.dp.message(Command("retrieve"))
        async def cmd_retrieve(message: Message, command: CommandObject) -> None:
            await self._run_command(message, command, self.controller.handle_retrieve)

        @self.dp.message(Command("register"))
        async def cmd_register(message: Message, command: CommandObject) -> None:
            await self._run_command(message, command, self.controller.handle_register)

        @self.dp.message(Command("track"))
        async def cmd_track(message: Message, command: CommandObject) -> None:
            await self._run_command(message, command, self.controller.handle_track)

        @self.dp.message(Command("forget"))
        async def cmd_forget(message: Message, command: CommandObject) -> None:
            await self._run_command(message, command, self.controller.handle_forget)

        # ── Inline keyboard callbacks ──

        @self.dp.callback_query(F.data.startswith(PAGE_PREFIX) | F.data.startswith(STORE_PREFIX))
        async def on_catalog_action(callback: CallbackQuery) -> None:
            await self.handle_callback(callback)

    async def handle_callback(self, callback: CallbackQuery) -> None:
        if not callback.data or not callback.message:
            return
        message = callback.message if isinstance(callback.message, Message) else None
        chat_id = callback.message.chat.id
        await self._guarded(
            self.controller.handle_callback(
                chat_id,
                callback.from_user.id if callback.from_user else None,
                callback.data,
                self.renderer_for(chat_id, message),
            ),
            "callback",
        )
        with contextlib.suppress(Exception):
            await callback.answer()

    async def _run_command(self, message: Message, command: CommandObject, handler) -> None:
        args = command.args.split() if command.args else []
        user_id = message.from_user.id if message.from_user else None
        await self._guarded(
            handler(message.chat.id, user_id, args, self.renderer_for(message.chat.id)),
            command.command,
        )

    async def _guarded(self, coro, name: str) -> None:
        """Await a controller call; failures to even report an error are logged."""
        try:
            await coro
        except Exception as e:
            logger.error("Telegram handler %s failed: %s", name, e, exc_info=True)

    async def start_polling(self) -> None:
        """Start the bot in long-polling mode."""
        if not self.config.bot_token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

        try:
            await self.bot.set_my_commands(
                [
                    BotCommand(command="list", description="Browse your stored secrets"),
                    BotCommand(command="retrieve", description="Retrieve a secret"),
                    BotCommand(command="register", description="Register your app ID"),
                    BotCommand(command="track", description="Remember a secret locally"),
                    BotCommand(command="forget", description="Forget a remembered secret"),
                    BotCommand(command="help", description="Show commands"),
                ]
            )
        except Exception as e:
            logger.warning("Failed to set bot commands: %s", e)

        logger.info("Starting Telegram bot polling...")
        try:
            await self.dp.start_polling(self.bot)
        except Exception as e:
            logger.error("Telegram polling failed: %s", e, exc_info=True)
            raise

    async def stop(self) -> None:
        """Stop the bot gracefully."""
        with contextlib.suppress(Exception):
            await self.bot.session.close()
