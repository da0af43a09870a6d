"""
Purpose: Centralized logging configuration with structured output support.
Constraints: Logging only; no business logic.
"""

# Imports
import json
import logging
import os
import re
import sys
import threading
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from lune_nuance.core.metrics import get_metrics

_REDACTED = "[redacted]"

# Decoded TOTP seeds are long runs of the Base32 alphabet.
_SECRET_PATTERNS = [
    re.compile(r"\b[A-Z2-7]{16,}\b"),
]


def _env_flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).lower() not in ("0", "false", "no")


def _redact_text(text: str) -> str:
    if not text:
        return text
    redacted = text
    for pattern in _SECRET_PATTERNS:
        redacted = pattern.sub(_REDACTED, redacted)
    return redacted


def _redact_obj(value):
    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, dict):
        return {k: _redact_obj(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_obj(v) for v in value]
    if isinstance(value, tuple):
        return tuple(_redact_obj(v) for v in value)
    return value


def default_logs_dir() -> Path:
    override = os.getenv("LOG_DIR", "").strip()
    if override:
        return Path(override)
    path_parts = Path(__file__).resolve().parents
    project_root = path_parts[3] if len(path_parts) > 3 else path_parts[2]
    return project_root / "logs"


# Public API
class UnifiedLogger:
    """Process-wide logger setup shared by the scraper runner and the CLI."""

    _lock = threading.Lock()
    _sentry_initialized = False
    _global_initialized = False

    def __init__(self, name: str = "lune_nuance", log_level: Optional[str] = None):
        self.name = name

        if log_level is None:
            log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, log_level.upper(), logging.INFO)

        with self._lock:
            self.logger = logging.getLogger(name)
            self.logger.setLevel(level)
            if not UnifiedLogger._global_initialized:
                logs_dir = default_logs_dir()
                logs_dir.mkdir(parents=True, exist_ok=True)
                timestamp = datetime.now().strftime("%Y%m%d")

                self._ensure_root_logger(logs_dir, timestamp, level)
                self._maybe_init_sentry()

                UnifiedLogger._global_initialized = True
                self.logger.debug(f"Logger initialized. Log dir: {logs_dir}")
            self.logger.propagate = True

    def get_logger(self) -> logging.Logger:
        """Get the underlying logger instance"""
        return self.logger

    def _maybe_init_sentry(self) -> None:
        if UnifiedLogger._sentry_initialized:
            return
        dsn = os.getenv("SENTRY_DSN", "").strip()
        if not dsn:
            return
        import sentry_sdk
        from sentry_sdk.integrations.logging import LoggingIntegration

        sentry_sdk.init(
            dsn=dsn,
            environment=os.getenv("SENTRY_ENVIRONMENT", "production"),
            release=os.getenv("SENTRY_RELEASE"),
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
            integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        )
        UnifiedLogger._sentry_initialized = True

    def _ensure_root_logger(self, logs_dir: Path, timestamp: str, level: int) -> None:
        if not _env_flag("ENABLE_ROOT_LOGGER"):
            return
        root_logger = logging.getLogger()
        if root_logger.handlers:
            return

        file_handler = RotatingFileHandler(
            logs_dir / f"nuance_{timestamp}.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, os.getenv("CONSOLE_LOG_LEVEL", "INFO").upper(), logging.INFO))

        detailed_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
        )
        simple_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")

        if _env_flag("LOG_REDACTION"):
            file_handler.setFormatter(_RedactingFormatter(detailed_formatter))
            console_handler.setFormatter(_RedactingFormatter(simple_formatter))
        else:
            file_handler.setFormatter(detailed_formatter)
            console_handler.setFormatter(simple_formatter)

        root_logger.setLevel(level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        if _env_flag("ENABLE_JSON_LOGGING"):
            json_handler = RotatingFileHandler(
                logs_dir / f"nuance_json_{timestamp}.log",
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            json_handler.setLevel(level)
            json_handler.setFormatter(_JsonFormatter(redact=_env_flag("LOG_REDACTION")))
            root_logger.addHandler(json_handler)
        if _env_flag("METRICS_ENABLED"):
            root_logger.addHandler(_MetricsHandler())


def setup_logger(name: str = "lune_nuance", log_level: Optional[str] = None) -> logging.Logger:
    """Convenience wrapper returning a configured logger"""
    return UnifiedLogger(name=name, log_level=log_level).get_logger()


def write_metrics_snapshot() -> Optional[Path]:
    """Append the current counters to logs/metrics.jsonl when METRICS_ENABLED is on."""
    if not _env_flag("METRICS_ENABLED"):
        return None
    path = default_logs_dir() / "metrics.jsonl"
    try:
        get_metrics().write_snapshot(path)
    except OSError as exc:
        logging.getLogger(__name__).warning(f"Could not write metrics snapshot to {path}: {exc}")
        return None
    return path


class _MetricsHandler(logging.Handler):
    """Count structured pipeline events and error records."""

    def emit(self, record: logging.LogRecord) -> None:
        metrics = get_metrics()
        if record.levelno >= logging.ERROR:
            metrics.record_error("log.error")
        action = getattr(record, "action", None)
        if action:
            metrics.record(str(action), success=record.levelno < logging.WARNING)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, base: logging.Formatter):
        super().__init__(base._fmt, base.datefmt)
        self._base = base

    def format(self, record: logging.LogRecord) -> str:
        original_msg, original_args = record.msg, record.args
        record.msg = _redact_text(record.getMessage())
        record.args = ()
        try:
            return self._base.format(record)
        finally:
            record.msg, record.args = original_msg, original_args


class _JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = True):
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        clean = _redact_obj if self._redact else (lambda value: value)
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": clean(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for attr in ("action", "details"):
            if hasattr(record, attr):
                log_obj[attr] = clean(getattr(record, attr))
        return json.dumps(log_obj, default=str)
