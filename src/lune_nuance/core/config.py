"""
Purpose: Load environment and JSON configuration for the scraper.
Constraints: Pure config I/O only; no network or browser side effects.
"""

# Imports
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from lune_nuance.core.config_models import (
    ExtractionSettings,
    RunnerSettings,
    ScraperSettings,
    SeleniumSettings,
)

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes", "y", "on")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _env_overrides(mapping: Dict[str, str]) -> Dict[str, Any]:
    """Collect env vars that are set, keyed by model field name."""
    return {field: os.environ[var] for field, var in mapping.items() if os.getenv(var, "") != ""}


_EXTRACTION_ENV = {
    "xor_marker": "NUANCE_XOR_MARKER",
    "field_marker": "NUANCE_FIELD_MARKER",
    "version_pattern": "NUANCE_VERSION_PATTERN",
    "window_before": "NUANCE_WINDOW_BEFORE",
    "window_after": "NUANCE_WINDOW_AFTER",
    "version_lookahead": "NUANCE_VERSION_LOOKAHEAD",
    "fallback_modulus": "NUANCE_FALLBACK_MODULUS",
    "fallback_offset": "NUANCE_FALLBACK_OFFSET",
    "join_mode": "NUANCE_JOIN_MODE",
}

_SCRAPER_ENV = {
    "target_url": "NUANCE_TARGET_URL",
    "script_host_filter": "NUANCE_SCRIPT_HOST",
    "fetch_mode": "NUANCE_FETCH_MODE",
    "records_path": "NUANCE_RECORDS_PATH",
    "log_level": "LOG_LEVEL",
}

_SELENIUM_ENV = {
    "chrome_binary": "CHROME_BIN",
    "chromedriver_path": "CHROMEDRIVER_PATH",
    "page_load_timeout": "SELENIUM_PAGE_LOAD_TIMEOUT",
    "settle_seconds": "SELENIUM_SETTLE_SECONDS",
    "user_agent": "SELENIUM_USER_AGENT",
}


# Public API
class ConfigManager:
    """Settings for the extraction core, the browser fetcher and the polling runner"""

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            override = os.getenv("NUANCE_CONFIG_DIR", "").strip()
            config_dir = Path(override) if override else Path(__file__).resolve().parents[3] / "config"
        self.config_dir = Path(config_dir)

        self.extraction = ExtractionSettings()
        self.scraper = ScraperSettings()
        self.selenium = SeleniumSettings()
        self.runner = RunnerSettings()

    def load_all(self):
        """Load settings.json first, then let environment variables override it"""
        self.load_env()
        self.load_settings()
        self.apply_env()
        return self

    def load_env(self):
        """Load the first .env file found"""
        env_files = [
            self.config_dir / "credentials.env",
            Path.cwd() / ".env",
            Path.home() / ".lune_nuance.env",
        ]
        for env_file in env_files:
            if env_file.exists():
                load_dotenv(env_file)
                logger.debug(f"Loaded environment from: {env_file}")
                break
        return self

    def load_json(self, filename: str, default: Any = None) -> Any:
        path = self.config_dir / filename
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error reading {path}: {e}. Using defaults.")
            return default

    def load_settings(self):
        """Load optional config/settings.json sections"""
        raw = self.load_json("settings.json", default={}) or {}
        if not isinstance(raw, dict):
            logger.warning("settings.json should contain a JSON object; using defaults")
            return self
        self.extraction = self._build(ExtractionSettings, raw.get("extraction"))
        self.scraper = self._build(ScraperSettings, raw.get("scraper"))
        self.selenium = self._build(SeleniumSettings, raw.get("selenium"))
        self.runner = self._build(RunnerSettings, raw.get("runner"))
        return self

    def apply_env(self):
        """Environment variables take precedence over settings.json"""
        self.extraction = self._merge(self.extraction, _env_overrides(_EXTRACTION_ENV))
        self.scraper = self._merge(self.scraper, _env_overrides(_SCRAPER_ENV))

        selenium_overrides = _env_overrides(_SELENIUM_ENV)
        selenium_overrides["headless"] = _env_bool("SELENIUM_HEADLESS", self.selenium.headless)
        selenium_overrides["use_undetected"] = _env_bool("SELENIUM_USE_UNDETECTED", self.selenium.use_undetected)
        self.selenium = self._merge(self.selenium, selenium_overrides)

        runner_overrides: Dict[str, Any] = {}
        if os.getenv("NUANCE_CHECK_INTERVAL_HOURS"):
            runner_overrides["check_interval_hours"] = os.environ["NUANCE_CHECK_INTERVAL_HOURS"]
        runner_overrides["run_once"] = _env_bool("NUANCE_RUN_ONCE", self.runner.run_once)
        self.runner = self._merge(self.runner, runner_overrides)
        return self

    @staticmethod
    def _build(model: type, raw: Any) -> BaseModel:
        if not raw:
            return model()
        try:
            return model(**raw)
        except (TypeError, ValidationError) as exc:
            logger.warning(f"Invalid {model.__name__} in settings.json: {exc}")
            return model()

    @staticmethod
    def _merge(current: BaseModel, overrides: Dict[str, Any]) -> BaseModel:
        if not overrides:
            return current
        try:
            return type(current)(**{**current.model_dump(), **overrides})
        except ValidationError as exc:
            logger.warning(f"Ignoring invalid environment overrides for {type(current).__name__}: {exc}")
            return current

    def records_path(self) -> Path:
        path = Path(self.scraper.records_path)
        if path.is_absolute():
            return path
        return self.config_dir.parent / path
