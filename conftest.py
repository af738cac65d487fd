"""
Root-level shared test fixtures.

Inherited by the package-local test suites (nilbot/store/tests,
nilbot/bot/tests) and the top-level tests/ directory.
"""

from __future__ import annotations

import base64
import io
import uuid

import pytest
from PIL import Image

from nilbot.config import reset_config


@pytest.fixture
def test_prefix():
    """Unique prefix for test isolation."""
    return f"test_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove nilbot env vars that leak between tests."""
    for key in [
        "NILBOT_ENV",
        "NODE_ENV",
        "NILBOT_STORE_BACKEND",
        "NILBOT_API_BASE",
        "NILLION_APP_ID",
        "NILBOT_HTTP_TIMEOUT",
        "USER_SEED",
        "NILBOT_PAGE_SIZE",
        "NILBOT_DB_PATH",
        "NILBOT_REDIS_URL",
        "KV_URL",
        "KV_REST_API_TOKEN",
        "NILBOT_TELEGRAM_BOT_TOKEN",
        "TELEGRAM_BOT_TOKEN",
        "NILBOT_LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


def make_image_bytes(size=(400, 300), color=(200, 30, 30), fmt="PNG") -> bytes:
    """Encode a solid-color image in memory."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def png_b64(png_bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def jpeg_b64() -> str:
    return base64.b64encode(make_image_bytes(fmt="JPEG")).decode("ascii")
