"""
Render requests — what the controller asks the chat front end to show.

The controller never talks to Telegram directly. It builds render requests
and hands them to a Renderer bound to one chat; the aiogram adapter in
nilbot.bot.telegram implements Renderer for real chats, tests use a
recording renderer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from nilbot.catalog.pager import Control


@dataclass(frozen=True)
class RenderText:
    text: str


@dataclass(frozen=True)
class RenderErrorText:
    text: str


@dataclass(frozen=True)
class RenderList:
    """A titled list of controls. ``replace`` edits the displayed list in place."""

    title: str
    controls: list[list[Control]] = field(default_factory=list)
    replace: bool = False


@dataclass(frozen=True)
class RenderPhoto:
    data: bytes
    caption: str = ""


@dataclass(frozen=True)
class RenderPhotoGroup:
    photos: list[RenderPhoto] = field(default_factory=list)


RenderRequest = RenderText | RenderErrorText | RenderList | RenderPhoto | RenderPhotoGroup


class Renderer(ABC):
    """Displays render requests in one chat.

    ``render`` raises nilbot.errors.RenderError when the front end rejects
    the payload (corrupt image, oversize caption, ...).
    """

    @abstractmethod
    async def render(self, request: RenderRequest) -> None:
        """Display one request."""

    async def text(self, text: str) -> None:
        await self.render(RenderText(text))

    async def error(self, text: str) -> None:
        await self.render(RenderErrorText(text))
