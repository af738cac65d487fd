"""nilbot — Telegram catalog and retrieval bot for Nillion-stored secrets."""

__version__ = "0.1.0"
