"""
Purpose: Fetch collaborator that turns the web player's script tags into CandidateSource items.
Constraints: Network and browser I/O only; no extraction logic.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.support.ui import WebDriverWait

from lune_nuance.core.config_models import ScraperSettings, SeleniumSettings
from lune_nuance.core.errors import FetchFailure
from lune_nuance.core.models import CandidateSource
from lune_nuance.core.utils.http import fetch_text
from lune_nuance.fetch.browser import BrowserManager

logger = logging.getLogger(__name__)

_SCRIPT_SOURCES_JS = "return Array.from(document.scripts).map(s => s.src).filter(Boolean);"

# Runs inside the page so the request carries the player's own cookies and origin.
_FETCH_IN_PAGE_JS = """
const url = arguments[0];
const done = arguments[arguments.length - 1];
fetch(url)
  .then(resp => resp.ok ? resp.text() : Promise.reject(new Error('HTTP ' + resp.status)))
  .then(text => done({ok: true, text: text}))
  .catch(err => done({ok: false, error: String(err)}));
"""


def filter_script_urls(urls: Iterable[str], host_filter: str) -> List[str]:
    """Keep CDN-hosted ``.js`` sources, de-duplicated, in discovery order."""
    seen = set()
    kept: List[str] = []
    for url in urls:
        if not url or url in seen:
            continue
        if host_filter and host_filter not in url:
            continue
        if not url.split("?", 1)[0].endswith(".js"):
            continue
        seen.add(url)
        kept.append(url)
    return kept


def script_filename(url: str) -> str:
    return url.split("?", 1)[0].rstrip("/").split("/")[-1]


class BundleFetcher:
    """Drive a browser to the web player and yield its script bundles one at a time.

    Bundles are fetched lazily so a consumer that stops at the first match
    never downloads the rest.
    """

    def __init__(
        self,
        scraper: Optional[ScraperSettings] = None,
        selenium: Optional[SeleniumSettings] = None,
        browser_manager: Optional[BrowserManager] = None,
        http_fetch: Callable[..., str] = fetch_text,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.scraper = scraper or ScraperSettings()
        self.selenium = selenium or SeleniumSettings()
        self.browser_manager = browser_manager or BrowserManager(self.selenium)
        self.http_fetch = http_fetch
        self.sleep = sleep
        self.driver = None

    def __enter__(self) -> "BundleFetcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self.driver is None:
            self.driver = self.browser_manager.create_driver()

    def close(self) -> None:
        if self.driver is None:
            return
        try:
            self.driver.quit()
        except WebDriverException as exc:
            logger.warning(f"Browser did not close cleanly: {exc}")
        finally:
            self.driver = None

    def discover_script_urls(self) -> List[str]:
        self.start()
        target = self.scraper.target_url
        logger.info(f"Navigating to {target}")
        self.driver.get(target)
        try:
            WebDriverWait(self.driver, self.selenium.page_load_timeout).until(
                lambda d: d.execute_script("return document.readyState") in ("interactive", "complete")
            )
        except TimeoutException:
            logger.warning("Timed out waiting for DOMContentLoaded; scanning whatever loaded")
        logger.info("DOMContentLoaded - proceeding with scan...")
        if self.selenium.settle_seconds > 0:
            self.sleep(self.selenium.settle_seconds)

        urls = filter_script_urls(self.driver.execute_script(_SCRIPT_SOURCES_JS) or [], self.scraper.script_host_filter)
        logger.info(f"Detected {len(urls)} CDN scripts.")
        return urls

    def fetch_bundle(self, url: str) -> str:
        if self.scraper.fetch_mode == "http":
            return self.http_fetch(url, timeout=self.selenium.page_load_timeout, user_agent=self.selenium.user_agent)
        try:
            result = self.driver.execute_async_script(_FETCH_IN_PAGE_JS, url)
        except WebDriverException as exc:
            raise FetchFailure(url, exc) from exc
        if not isinstance(result, dict) or not result.get("ok"):
            reason = result.get("error") if isinstance(result, dict) else "empty response"
            raise FetchFailure(url, RuntimeError(reason))
        return result.get("text") or ""

    def iter_sources(self) -> Iterator[CandidateSource]:
        urls = self.discover_script_urls()
        for index, url in enumerate(urls, start=1):
            logger.info(f"Scanning [{index}/{len(urls)}] {script_filename(url)}...")
            try:
                text = self.fetch_bundle(url)
            except FetchFailure as exc:
                logger.warning(f"[ FAIL ] {exc}", extra={"action": "fetch.failed", "details": {"url": url}})
                continue
            yield CandidateSource(url=url, text=text)


def iter_file_sources(paths: Iterable[Path]) -> Iterator[CandidateSource]:
    """Offline counterpart of :meth:`BundleFetcher.iter_sources` over saved bundles."""
    for path in paths:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning(f"[ FAIL ] Could not read {path}: {exc}", extra={"action": "fetch.failed", "details": {"url": str(path)}})
            continue
        yield CandidateSource(url=path.as_uri() if path.is_absolute() else str(path), text=text)
