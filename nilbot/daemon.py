"""
Main daemon entry point — wires the bot together and long-polls Telegram.

Runs as: python -m nilbot.daemon   (or: nilbot run)

Startup order:
- configuration from the environment (once)
- metadata store for the configured backend
- storage API client, catalog pager, retrieval broker, thumbnail compressor
- interaction controller and the Telegram bot
"""

from __future__ import annotations

import asyncio
import logging

from nilbot.api.client import StorageApiClient
from nilbot.bot.controller import InteractionController
from nilbot.bot.telegram import TelegramBot
from nilbot.catalog.pager import CatalogPager
from nilbot.config import Config, get_config
from nilbot.media.thumbnail import ThumbnailCompressor
from nilbot.retrieval.broker import RetrievalBroker
from nilbot.store import create_store

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def run(config: Config) -> None:
    """Build all components and poll until the bot stops."""
    logger.info("Environment: %s", config.environment)
    logger.info("Storage API: %s", config.api_base)
    logger.info("Catalog app ID: %s", config.app_id or "per-user")
    logger.info("User seed: %s", "configured" if config.user_seed else "per Telegram user")

    store = create_store(config)
    client = StorageApiClient(config.api_base, timeout=config.http_timeout)
    controller = InteractionController(
        config,
        store,
        CatalogPager(client),
        RetrievalBroker(client),
        ThumbnailCompressor(),
    )
    bot = TelegramBot(config, controller)

    try:
        await bot.start_polling()
    finally:
        logger.info("Shutting down...")
        await bot.stop()
        await client.close()
        await store.close()
        logger.info("Bot stopped")


def main() -> int:
    config = get_config()
    configure_logging(config.log_level)
    if not config.bot_token:
        logger.error("TELEGRAM_BOT_TOKEN is not set")
        return 1
    logger.info("Starting nilbot...")
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
