"""Metadata store data models.

Serialized with camelCase keys so documents written by earlier deployments
(``storeId``, ``secretName``, ...) load unchanged.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


class ContentType(StrEnum):
    TEXT = "text"
    IMAGE = "image"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoreEntry(_CamelModel):
    """Local metadata for one secret held by the remote service."""

    store_id: str
    secret_name: str
    created_at: datetime = Field(default_factory=utcnow)
    content_type: ContentType | None = None
    thumbnail: str | None = None  # base64 JPEG

    @model_validator(mode="after")
    def _thumbnail_is_image(self) -> StoreEntry:
        if self.thumbnail and self.content_type != ContentType.IMAGE:
            raise ValueError("thumbnail requires content_type 'image'")
        return self

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(_CamelModel):
    """Per-user aggregate held by the local backend."""

    user_key: str
    app_ids: list[str] = []
    store_ids: list[StoreEntry] = []
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    @property
    def current_app_id(self) -> str | None:
        return self.app_ids[-1] if self.app_ids else None

    def touch(self) -> None:
        self.last_updated = utcnow()

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
