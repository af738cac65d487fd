"""
nilbot CLI — entry point for operators.

Usage:
    nilbot run                          # Start the Telegram bot
    nilbot status                       # Show effective configuration
    nilbot entries <user_key>           # List a user's local store entries
    nilbot forget <user_key> <store_id> # Remove a user's store entries
    nilbot version                      # Show version
"""

from __future__ import annotations

import argparse
import asyncio

from nilbot.errors import PersistenceError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="nilbot",
        description="nilbot — browse and retrieve Nillion-stored secrets from Telegram.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the Telegram bot")
    subparsers.add_parser("status", help="Show effective configuration")

    entries_parser = subparsers.add_parser("entries", help="List a user's local store entries")
    entries_parser.add_argument("user_key", help="User key (the user seed)")

    forget_parser = subparsers.add_parser("forget", help="Remove a user's store entries")
    forget_parser.add_argument("user_key", help="User key (the user seed)")
    forget_parser.add_argument("store_id", help="Store ID to remove")

    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from nilbot import __version__

        print(f"nilbot {__version__}")
        return 0

    if args.command == "run":
        return _cmd_run()
    elif args.command == "status":
        return _cmd_status()
    elif args.command == "entries":
        return _cmd_entries(args)
    elif args.command == "forget":
        return _cmd_forget(args)
    else:
        parser.print_help()
        return 0


def _cmd_run() -> int:
    from nilbot.daemon import main as daemon_main

    return daemon_main()


def _cmd_status() -> int:
    from nilbot.config import get_config

    cfg = get_config()
    print(f"Environment:   {cfg.environment}")
    print(f"Store backend: {cfg.store_backend}")
    if cfg.store_backend == "local":
        print(f"Metadata file: {cfg.db_path}")
    print(f"Storage API:   {cfg.api_base}")
    print(f"App ID:        {cfg.app_id or '(per user)'}")
    print(f"User seed:     {'configured' if cfg.user_seed else '(per Telegram user)'}")
    print(f"Page size:     {cfg.page_size}")
    print(f"Telegram bot:  {'configured' if cfg.bot_token else 'not configured'}")
    return 0


async def _list_entries(user_key: str) -> list:
    from nilbot.config import get_config
    from nilbot.store import create_store

    store = create_store(get_config())
    try:
        return await store.list_store_entries(user_key)
    finally:
        await store.close()


async def _forget(user_key: str, store_id: str) -> None:
    from nilbot.config import get_config
    from nilbot.store import create_store

    store = create_store(get_config())
    try:
        await store.remove_store_entry(user_key, store_id)
    finally:
        await store.close()


def _cmd_entries(args: argparse.Namespace) -> int:
    try:
        entries = asyncio.run(_list_entries(args.user_key))
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1

    if not entries:
        print(f"No entries for user {args.user_key}")
        return 0

    for entry in entries:
        kind = entry.content_type.value if entry.content_type else "-"
        thumb = "yes" if entry.thumbnail else "no"
        print(f"{entry.store_id}  {entry.secret_name}  type={kind}  thumbnail={thumb}")
    return 0


def _cmd_forget(args: argparse.Namespace) -> int:
    try:
        asyncio.run(_forget(args.user_key, args.store_id))
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1
    print(f"Removed {args.store_id} for user {args.user_key}")
    return 0
