"""
Purpose: Typed configuration models with validation.
Constraints: Pure models; no file I/O or side effects.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractionSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    xor_marker: str = "charCodeAt(0)^"
    field_marker: str = "secret:"
    version_pattern: str = r"version:(\d+)"
    window_before: int = Field(default=3000, ge=0)
    window_after: int = Field(default=1500, ge=0)
    version_lookahead: int = Field(default=100, ge=1)
    fallback_modulus: int = Field(default=33, ge=1)
    fallback_offset: int = 9
    join_mode: str = "codepoints"

    @field_validator("join_mode")
    @classmethod
    def _check_join_mode(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("codepoints", "decimal"):
            raise ValueError("join_mode must be 'codepoints' or 'decimal'")
        return value


class SeleniumSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    headless: bool = True
    chrome_binary: str = ""
    chromedriver_path: str = ""
    use_undetected: bool = False
    page_load_timeout: int = 30
    settle_seconds: float = 2.0
    script_timeout: int = 60
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    extra_args: List[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
            "--disable-extensions",
        ]
    )


class ScraperSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    target_url: str = "https://open.spotify.com"
    script_host_filter: str = "spotifycdn.com"
    fetch_mode: str = "browser"
    records_path: str = "nuance.json"
    log_level: str = "INFO"


class RunnerSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    check_interval_hours: float = Field(default=6.0, gt=0)
    run_once: bool = False
