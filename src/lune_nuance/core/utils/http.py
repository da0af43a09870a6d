"""
Purpose: Download script bundles over HTTP with retry/backoff.
Constraints: No extraction logic; callers decide what to do with the text.
"""

from __future__ import annotations

import os
from typing import Optional

import requests

from lune_nuance.core.errors import FetchFailure
from lune_nuance.core.utils.retry import retry

RETRY_ON_STATUS = {429, 500, 502, 503, 504}


class RetryableStatus(RuntimeError):
    def __init__(self, status_code: int):
        super().__init__(f"Retryable HTTP status: {status_code}")
        self.status_code = status_code


def fetch_text(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = 30.0,
    user_agent: str = "",
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> str:
    """GET ``url`` and return its body; any failure surfaces as :class:`FetchFailure`."""
    attempts = attempts or int(os.getenv("HTTP_RETRY_ATTEMPTS", "3"))
    base_delay = base_delay if base_delay is not None else float(os.getenv("HTTP_RETRY_BASE_DELAY", "0.5"))
    client = session or requests.Session()
    headers = {"User-Agent": user_agent} if user_agent else {}

    def _do_request() -> str:
        resp = client.get(url, headers=headers, timeout=timeout)
        if resp.status_code in RETRY_ON_STATUS:
            raise RetryableStatus(resp.status_code)
        resp.raise_for_status()
        return resp.text

    try:
        return retry(
            _do_request,
            attempts=attempts,
            base_delay=base_delay,
            exceptions=(RetryableStatus, requests.ConnectionError, requests.Timeout),
        )
    except (RetryableStatus, requests.RequestException) as exc:
        raise FetchFailure(url, exc) from exc
