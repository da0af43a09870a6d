"""
Purpose: Scheduling wrapper around the scrape pipeline (single run or fixed-interval polling).
Constraints: Orchestration only; extraction lives in core, browser I/O in fetch.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from lune_nuance.core.config import ConfigManager
from lune_nuance.core.logging import write_metrics_snapshot
from lune_nuance.core.models import RunResult
from lune_nuance.core.pipeline import run_scrape
from lune_nuance.core.storage.record_store import RecordStore
from lune_nuance.fetch.bundle_fetcher import BundleFetcher

logger = logging.getLogger(__name__)

FetcherFactory = Callable[[ConfigManager], BundleFetcher]


def default_fetcher(config: ConfigManager) -> BundleFetcher:
    return BundleFetcher(scraper=config.scraper, selenium=config.selenium)


def scrape_once(config: ConfigManager, fetcher_factory: FetcherFactory = default_fetcher) -> RunResult:
    """Open a browser, run the pipeline over its bundles and always close the browser."""
    result = _scrape(config, fetcher_factory)
    write_metrics_snapshot()
    return result


def _scrape(config: ConfigManager, fetcher_factory: FetcherFactory) -> RunResult:
    store = RecordStore(config.records_path())
    fetcher = fetcher_factory(config)
    try:
        with fetcher:
            result = run_scrape(fetcher.iter_sources(), store, config.extraction)
    except Exception as exc:  # noqa: BLE001 - browser start/stop failures end this run only
        logger.error(f"Scrape aborted: {exc}", extra={"action": "run.failed", "details": {"reason": str(exc)}})
        return RunResult(success=False, error=str(exc) or type(exc).__name__)

    if result.success:
        logger.info(
            f"Run complete: {len(result.records)} record(s), "
            f"{result.added} new, {result.overwritten} overwritten",
            extra={"action": "run.success", "details": {"source_url": result.source_url, "has_changes": result.has_changes}},
        )
    return result


def next_run_at(now: datetime, interval_hours: float) -> datetime:
    return now + timedelta(hours=interval_hours)


def run_forever(
    config: ConfigManager,
    fetcher_factory: FetcherFactory = default_fetcher,
    sleep: Callable[[float], None] = time.sleep,
    max_runs: Optional[int] = None,
) -> None:
    """Scrape, wait ``check_interval_hours``, repeat. ``max_runs`` bounds the loop for tests."""
    interval_hours = config.runner.check_interval_hours
    runs = 0
    while max_runs is None or runs < max_runs:
        scrape_once(config, fetcher_factory)
        runs += 1
        if max_runs is not None and runs >= max_runs:
            break
        upcoming = next_run_at(datetime.now(), interval_hours)
        logger.info(f"Next scrape at {upcoming.strftime('%H:%M:%S')} on {upcoming.strftime('%Y-%m-%d')}")
        sleep(interval_hours * 3600)
