#!/usr/bin/env python3
"""
APK Store CLI

Command-line interface for browsing the live app catalog.
"""

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from common.exceptions import ConfigError
from common.logging_config import setup_logging

from apkstore.app_catalog import AppCatalog, AppView, filter_records
from apkstore.catalog_sync import CatalogSync, SyncState
from apkstore.config import StoreConfig
from apkstore.view_model import EMPTY_HINT, EMPTY_TITLE, ERROR_TITLE, render_page

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def load_config(args) -> StoreConfig:
    """Config file and environment, then command-line overrides."""
    config = StoreConfig.load(Path(args.config) if args.config else None)
    overrides = {}
    if args.project:
        overrides["project_id"] = args.project
    if args.collection:
        overrides["collection"] = args.collection
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return StoreConfig.from_mapping(overrides, base=config)


def open_sync(config: StoreConfig) -> CatalogSync:
    """Create (but do not start) the catalog subscription."""
    return CatalogSync.from_config(config)


def take_snapshot(config: StoreConfig, timeout: float) -> Optional[SyncState]:
    """Subscribe, wait for the first snapshot or error, then unsubscribe."""
    with open_sync(config) as sync:
        if not sync.wait_until_ready(timeout):
            return None
        return sync.state()


def _print_error(error: str):
    print(f"{ERROR_TITLE} {error}", file=sys.stderr)


def _print_apps(views, query: str):
    if not views:
        print(f"{EMPTY_TITLE} for: {query or '(all)'}")
        print(EMPTY_HINT)
        return

    print(f"{len(views)} Apps Available:\n")
    for view in views:
        print(f"  {view.id}")
        print(f"    {view.name} ({view.category}, {view.version_label}, {view.size_label})")
        print(f"    {view.downloads_label}")
        print()


def cmd_search(args, config: StoreConfig) -> int:
    """Search the catalog by name or category."""
    state = take_snapshot(config, args.timeout)
    if state is None:
        print("Timed out waiting for the catalog.", file=sys.stderr)
        return 1

    if state.error:
        _print_error(state.error)

    catalog = AppCatalog(state.records)
    results = catalog.search(args.query)
    logger.debug(f"{len(results)} of {len(catalog)} apps match {args.query!r}")
    if args.json:
        print(json.dumps([record.to_dict() for record in results], indent=2))
    elif results or not state.error:
        _print_apps([AppView.from_record(record) for record in results], args.query)

    return 1 if state.error else 0


def cmd_info(args, config: StoreConfig) -> int:
    """Show detailed app information."""
    state = take_snapshot(config, args.timeout)
    if state is None:
        print("Timed out waiting for the catalog.", file=sys.stderr)
        return 1
    if state.error:
        _print_error(state.error)
        return 1

    record = AppCatalog(state.records).get(args.app_id)
    if record is None:
        print(f"App not found: {args.app_id}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(record.to_dict(), indent=2))
        return 0

    view = AppView.from_record(record)
    print(f"Name:        {view.name}")
    print(f"ID:          {view.id}")
    print(f"Category:    {view.category}")
    print(f"Developer:   {view.developer}")
    print(f"Version:     {view.version_label}")
    print(f"Size:        {view.size_label}")
    print(f"Downloads:   {view.downloads_count}")
    print(f"Released:    {view.released}")
    print(f"License:     {view.license}")
    print(f"Description: {view.description}")
    if view.apk_url:
        print(f"Download:    {view.apk_url}")
    if view.screenshot_urls:
        print("Screenshots:")
        for url in view.screenshot_urls:
            print(f"  {url}")

    return 0


def cmd_watch(args, config: StoreConfig, stop_event: Optional[threading.Event] = None) -> int:
    """Print the filtered catalog on every snapshot until interrupted."""
    stop_event = stop_event or threading.Event()

    def on_state(state: SyncState):
        page = render_page(filter_records(state.records, args.query), state.loading, state.error, None)
        if page.show_spinner:
            return
        print(f"--- {page.count_label}")
        if page.error:
            _print_error(page.error)
        if page.cards or page.show_empty_state:
            _print_apps(page.cards, args.query)
        sys.stdout.flush()

    sync = open_sync(config)
    sync.subscribe(on_state)
    sync.start()
    try:
        stop_event.wait()
    except KeyboardInterrupt:
        print("\nStopped.")
    finally:
        sync.stop()
    return 0


def cmd_gui(args, config: StoreConfig) -> int:
    """Launch the desktop storefront."""
    from apkstore.gui.store_window_qt import main as gui_main

    return gui_main(config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apkstore",
        description="APK Store - live Android app catalog",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--project", help="Firestore project ID")
    parser.add_argument("--collection", help="Catalog collection name")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # gui
    gui_p = subparsers.add_parser("gui", help="Open the storefront window")
    gui_p.set_defaults(func=cmd_gui)

    # search
    search_p = subparsers.add_parser("search", help="Search for apps")
    search_p.add_argument("query", nargs="?", default="", help="Search query")
    search_p.add_argument("--json", action="store_true", help="Print raw records as JSON")
    search_p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                          help="Seconds to wait for the catalog")
    search_p.set_defaults(func=cmd_search)

    # info
    info_p = subparsers.add_parser("info", help="Show app details")
    info_p.add_argument("app_id", help="App ID")
    info_p.add_argument("--json", action="store_true", help="Print the raw record as JSON")
    info_p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help="Seconds to wait for the catalog")
    info_p.set_defaults(func=cmd_info)

    # watch
    watch_p = subparsers.add_parser("watch", help="Print the catalog on every change")
    watch_p.add_argument("query", nargs="?", default="", help="Search query")
    watch_p.set_defaults(func=cmd_watch)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_file, config.json_logs)

    func = getattr(args, "func", cmd_gui)
    return func(args, config)


if __name__ == "__main__":
    sys.exit(main())
