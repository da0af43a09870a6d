#!/usr/bin/env python3
"""
Unified CLI entrypoint with subcommands.

  lune-nuance scrape [--once]          browser scrape (polls every N hours without --once)
  lune-nuance decode BUNDLE [BUNDLE..]  run the pipeline over saved bundle files
  lune-nuance show                      print the current record store
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from lune_nuance.core.config import ConfigManager
from lune_nuance.core.logging import setup_logger
from lune_nuance.core.pipeline import run_scrape
from lune_nuance.core.storage.record_store import RecordStore, serialize_records
from lune_nuance.fetch.bundle_fetcher import iter_file_sources
from lune_nuance.runner import run_forever, scrape_once


def _positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0: {raw!r}")
    return value


def _store_options(default=None) -> argparse.ArgumentParser:
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument("--records", default=default, help="Record store path (default: nuance.json)")
    options.add_argument("--join-mode", choices=["codepoints", "decimal"], default=default)
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lune-nuance", description="Nuance (TOTP secret) scraper", parents=[_store_options()]
    )
    # Subcommands accept the store options too; SUPPRESS keeps a value given before the subcommand.
    shared = _store_options(default=argparse.SUPPRESS)
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", parents=[shared], help="Scrape the web player's bundles in a browser")
    scrape.add_argument("--once", action="store_true", help="Run a single scrape and exit")
    scrape.add_argument("--interval-hours", type=_positive_float, default=None)
    scrape.add_argument("--headed", action="store_true", help="Show the browser window")

    decode = sub.add_parser("decode", parents=[shared], help="Run the pipeline over saved bundle files")
    decode.add_argument("bundles", nargs="+", type=Path)
    decode.add_argument("--dry-run", action="store_true", help="Print records without saving")

    sub.add_parser("show", parents=[shared], help="Print the current record store")
    return parser


def _apply_args(config: ConfigManager, args: argparse.Namespace) -> ConfigManager:
    if args.records:
        # Paths typed on the command line are relative to the working directory.
        config.scraper = config.scraper.model_copy(update={"records_path": str(Path(args.records).resolve())})
    if args.join_mode:
        config.extraction = config.extraction.model_copy(update={"join_mode": args.join_mode})
    if getattr(args, "interval_hours", None):
        config.runner = config.runner.model_copy(update={"check_interval_hours": args.interval_hours})
    if getattr(args, "headed", False):
        config.selenium = config.selenium.model_copy(update={"headless": False})
    if getattr(args, "once", False):
        config.runner = config.runner.model_copy(update={"run_once": True})
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = _apply_args(ConfigManager().load_all(), args)
    logger = setup_logger("lune_nuance", config.scraper.log_level)

    if args.command == "show":
        store = RecordStore(config.records_path()).load()
        print(serialize_records(store.records))
        return 0

    if args.command == "decode":
        store = RecordStore(config.records_path())
        result = run_scrape(iter_file_sources(args.bundles), store, config.extraction, persist=not args.dry_run)
        if not result.success:
            logger.error(f"Decode failed: {result.error}")
            return 1
        print(json.dumps([record.to_dict() for record in result.records], indent=2))
        return 0

    if config.runner.run_once:
        mode = "single"
    else:
        mode = f"continuous ({config.runner.check_interval_hours:g}h)"
    logger.info(f"Mode: {mode}")
    logger.info(f"Output: {config.records_path()}")

    if config.runner.run_once:
        return 0 if scrape_once(config).success else 1
    run_forever(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
