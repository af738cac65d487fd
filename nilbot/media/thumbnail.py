"""
Thumbnail compressor — small, captioned, size-bounded JPEG previews.

Steps:
1. Downscale into a 100x100 box, keeping aspect ratio. Smaller images are
   never enlarged.
2. Overlay the caption centered near the bottom edge, font size scaled to the
   image height, semi-transparent white over a soft dark shadow.
3. Re-encode as progressive JPEG at quality 20.

Any failure raises ImageProcessingError. Callers store the entry without a
thumbnail instead of retrying.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from nilbot.errors import ImageProcessingError

logger = logging.getLogger(__name__)

BOX_SIZE = (100, 100)
JPEG_QUALITY = 20
MIN_FONT_SIZE = 8
TEXT_OPACITY = 178  # ~0.7
SHADOW_OPACITY = 128
SHADOW_OFFSET = 2

# Upper bound for an encoded 100x100 thumbnail.
MAX_THUMBNAIL_BYTES = 16 * 1024


def decode_base64(value: str) -> bytes:
    """Strict base64 decode that ignores whitespace such as MIME line wrapping."""
    return base64.b64decode("".join(value.split()), validate=True)


def _font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def _overlay_caption(image: Image.Image, caption: str) -> Image.Image:
    width, height = image.size
    font_size = max(MIN_FONT_SIZE, height // 8)
    base = image.convert("RGBA")
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    font = _font(font_size)
    # Centered horizontally, baseline near 90% of the height.
    left, top, right, bottom = draw.textbbox((0, 0), caption, font=font)
    x = (width - (right - left)) / 2 - left
    y = height * 0.9 - bottom
    draw.text(
        (x + SHADOW_OFFSET, y + SHADOW_OFFSET),
        caption,
        font=font,
        fill=(0, 0, 0, SHADOW_OPACITY),
    )
    draw.text((x, y), caption, font=font, fill=(255, 255, 255, TEXT_OPACITY))
    return Image.alpha_composite(base, layer).convert("RGB")


class ThumbnailCompressor:
    """Produces bounded-size captioned thumbnails from image bytes."""

    def __init__(self, box: tuple[int, int] = BOX_SIZE, quality: int = JPEG_QUALITY) -> None:
        self.box = box
        self.quality = quality

    def compress(self, image_bytes: bytes, caption: str) -> bytes:
        """Return JPEG bytes no larger than MAX_THUMBNAIL_BYTES."""
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                img.load()
                resized = img.copy()
        except Image.DecompressionBombError as e:
            raise ImageProcessingError(f"Image too large: {e}") from e
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImageProcessingError(f"Unreadable image: {e}") from e

        resized.thumbnail(self.box)
        width, height = resized.size
        if not width or not height:
            raise ImageProcessingError("Failed to get image dimensions")

        try:
            captioned = _overlay_caption(resized, caption)
            out = io.BytesIO()
            captioned.save(out, format="JPEG", quality=self.quality, progressive=True)
        except (OSError, ValueError) as e:
            raise ImageProcessingError(f"Thumbnail encode failed: {e}") from e

        data = out.getvalue()
        if len(data) > MAX_THUMBNAIL_BYTES:
            raise ImageProcessingError(
                f"Thumbnail is {len(data)} bytes, limit is {MAX_THUMBNAIL_BYTES}"
            )
        logger.debug("Thumbnail %dx%d, %d bytes for %r", width, height, len(data), caption)
        return data

    def compress_base64(self, image_b64: str, caption: str) -> str:
        """Same as compress() for base64 transport strings."""
        try:
            raw = decode_base64(image_b64)
        except (binascii.Error, ValueError) as e:
            raise ImageProcessingError(f"Invalid base64 image: {e}") from e
        return base64.b64encode(self.compress(raw, caption)).decode("ascii")
