"""
Retrieval broker — fetch a secret and decide how to display it.

Content type is resolved in two tiers:
  1. the content type recorded in local metadata, when present;
  2. otherwise a sniff of the payload's leading base64 signature
     (``/9j/`` is JPEG, ``iVBOR`` is PNG). Anything else is text.

The sniff is a display heuristic only. It is never written back to the
metadata store as if it were authoritative.
"""

from __future__ import annotations

import binascii
import logging

from nilbot.api.client import StorageApiClient
from nilbot.bot.render import RenderPhoto, RenderRequest, RenderText
from nilbot.errors import NotFoundError, RenderError
from nilbot.media.thumbnail import decode_base64
from nilbot.store.models import ContentType

logger = logging.getLogger(__name__)

IMAGE_SIGNATURES = ("/9j/", "iVBOR")


def sniff_content_type(secret: str) -> ContentType:
    """Classify a raw payload by its leading base64 signature."""
    if secret.startswith(IMAGE_SIGNATURES):
        return ContentType.IMAGE
    return ContentType.TEXT


def decode_image(secret: str) -> bytes:
    """Decode a base64 image payload. Raises RenderError on bad input."""
    try:
        data = decode_base64(secret)
    except (binascii.Error, ValueError) as e:
        raise RenderError(
            f"Invalid base64 image payload: {e}",
            user_message="Could not process the retrieved image",
        ) from e
    if not data:
        raise RenderError(
            "Empty image payload", user_message="Could not process the retrieved image"
        )
    return data


class RetrievalBroker:
    """Fetches secrets from the storage service and classifies them."""

    def __init__(self, client: StorageApiClient) -> None:
        self.client = client

    async def retrieve(self, store_id: str, secret_name: str, user_seed: str) -> str:
        """Return the raw secret. NotFoundError when the service has none."""
        secret = await self.client.retrieve_secret(store_id, secret_name, user_seed)
        if secret is None:
            raise NotFoundError("No data found for this store ID")
        return secret

    def classify(self, secret: str, content_type: ContentType | None = None) -> ContentType:
        if content_type is not None:
            return content_type
        sniffed = sniff_content_type(secret)
        logger.debug("No recorded content type, sniffed %s", sniffed)
        return sniffed

    def dispatch(
        self,
        secret: str,
        secret_name: str,
        content_type: ContentType | None = None,
    ) -> RenderRequest:
        """Build the render request for a retrieved secret."""
        if self.classify(secret, content_type) is ContentType.IMAGE:
            return RenderPhoto(data=decode_image(secret), caption=f"Retrieved image: {secret_name}")
        return RenderText(f"Retrieved text: {secret}")
