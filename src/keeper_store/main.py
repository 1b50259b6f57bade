#!/usr/bin/env python
"""Command-line entry point for the Keeper note store."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from keeper_store import __version__
from keeper_store.config import BACKENDS, LOG_LEVELS, config
from keeper_store.exceptions import KeeperError
from keeper_store.observability import configure_logging
from keeper_store.services.blob_store import FilesystemBlobStore
from keeper_store.services.keeper_service import KeeperService
from keeper_store.storage import open_adapter


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Keeper note store")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("KEEPER_DATABASE_PATH")
    )
    parser.add_argument(
        "--backend",
        help="Storage adapter to open",
        choices=BACKENDS,
        default=None
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=LOG_LEVELS,
        default=config.log_level
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init", help="Create the database schema")
    subparsers.add_parser("reindex", help="Rebuild the full-text search index")
    subparsers.add_parser("check", help="Check the full-text search index")
    search_parser = subparsers.add_parser("search", help="Search notes")
    search_parser.add_argument("query", help="Words to search for")
    subparsers.add_parser("tags", help="List all tags")
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)
    if args.backend:
        config.backend = args.backend


def build_service() -> KeeperService:
    """Open the configured store with a filesystem blob store for media."""
    return KeeperService(
        open_adapter(config),
        blob_store=FilesystemBlobStore(config.get_media_dir()),
    )


def run_command(service: KeeperService, args) -> int:
    """Run one sub-command against an open service; returns the exit code."""
    if args.command == "init":
        print(f"Schema ready ({config.backend})")
    elif args.command == "reindex":
        count = service.rebuild_search_index()
        print(f"Indexed {count} notes")
    elif args.command == "check":
        if not service.check_search_index():
            print("Search index is inconsistent; run 'keeper-store reindex'")
            return 1
        print("Search index OK")
    elif args.command == "search":
        for result in service.search(args.query):
            marker = " [archived]" if result.archived else ""
            print(f"{result.id}  {result.title or '(untitled)'}{marker}")
    elif args.command == "tags":
        for tag in service.get_all_tags():
            icon = f" {tag.icon}" if tag.icon else ""
            print(f"{tag.id}  {tag.name}{icon}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the keeper-store command line."""
    # Parse arguments and update config
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    logger = logging.getLogger(__name__)

    try:
        service = build_service()
    except KeeperError as e:
        logger.error(f"Failed to open note store: {e}")
        return 1

    try:
        return run_command(service, args)
    except KeeperError as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
