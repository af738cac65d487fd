"""
Centralized configuration for nilbot.

All configuration is loaded from environment variables with sensible defaults.
Values are read once at startup and passed to constructors; business logic
never reads the environment directly.

Usage:
    from nilbot.config import get_config
    cfg = get_config()
    print(cfg.store_backend)   # "local" or "kv"
    print(cfg.api_base)        # "https://nillion-storage-apis-v0.onrender.com/api"
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

STORE_BACKENDS = ("kv", "local")
DEFAULT_API_BASE = "https://nillion-storage-apis-v0.onrender.com/api"
DEFAULT_PAGE_SIZE = 5


def _page_size(raw: str) -> int:
    """Parse NILBOT_PAGE_SIZE; values below 1 fall back to the default."""
    value = int(raw)
    return value if value >= 1 else DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class RedisConfig:
    """Key-value service connection parameters."""

    url: str = "redis://127.0.0.1:6379/0"
    token: str = ""

    @property
    def connection_url(self) -> str:
        """Return the URL with the access token injected as password, if any."""
        if not self.token or "@" in self.url:
            return self.url
        scheme, sep, rest = self.url.partition("://")
        if not sep:
            return self.url
        return f"{scheme}://:{self.token}@{rest}"


@dataclass(frozen=True)
class Config:
    """Top-level nilbot configuration."""

    # Deployment
    environment: str = "development"
    backend_override: str = ""

    # Remote storage service
    api_base: str = DEFAULT_API_BASE
    app_id: str = ""
    http_timeout: float = 30.0

    # Identity
    user_seed: str = ""

    # Catalog
    page_size: int = DEFAULT_PAGE_SIZE

    # Metadata store
    db_path: Path = field(default_factory=lambda: Path("db.json"))
    redis: RedisConfig = field(default_factory=RedisConfig)

    # Telegram
    bot_token: str = ""

    # Logging
    log_level: str = "INFO"

    @property
    def store_backend(self) -> str:
        """Metadata store backend: explicit override, else by environment."""
        if self.backend_override in STORE_BACKENDS:
            return self.backend_override
        return "kv" if self.environment == "production" else "local"

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        redis_cfg = RedisConfig(
            url=os.environ.get("NILBOT_REDIS_URL", "")
            or os.environ.get("KV_URL", "redis://127.0.0.1:6379/0"),
            token=os.environ.get("KV_REST_API_TOKEN", ""),
        )
        return cls(
            environment=os.environ.get("NILBOT_ENV", "")
            or os.environ.get("NODE_ENV", "development"),
            backend_override=os.environ.get("NILBOT_STORE_BACKEND", "").strip().lower(),
            api_base=os.environ.get("NILBOT_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            app_id=os.environ.get("NILLION_APP_ID", ""),
            http_timeout=float(os.environ.get("NILBOT_HTTP_TIMEOUT", "30")),
            user_seed=os.environ.get("USER_SEED", "").strip(),
            page_size=_page_size(os.environ.get("NILBOT_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
            db_path=Path(os.environ.get("NILBOT_DB_PATH", "db.json")),
            redis=redis_cfg,
            bot_token=os.environ.get("NILBOT_TELEGRAM_BOT_TOKEN", "")
            or os.environ.get("TELEGRAM_BOT_TOKEN", ""),
            log_level=os.environ.get("NILBOT_LOG_LEVEL", "INFO").upper(),
        )


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
