"""
Purpose: Retry helper with exponential backoff for bundle downloads.
Constraints: Utility only; callers decide which exceptions are retriable.
"""

# Imports
import logging
import random
import time
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.0) -> float:
    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
    if jitter:
        delay += random.uniform(0, jitter)
    return delay


# Public API
def retry(
    func: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    jitter: float = 0.2,
    exceptions: Iterable[type] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Call ``func`` until it succeeds or ``attempts`` run out; re-raise the last error."""
    retriable = tuple(exceptions)
    attempt = 1
    while True:
        try:
            return func()
        except retriable as exc:
            if attempt >= attempts:
                raise
            if on_retry:
                on_retry(attempt, exc)
            else:
                logger.debug(f"Attempt {attempt}/{attempts} failed: {exc}; retrying")
            (sleep or time.sleep)(backoff_delay(attempt, base_delay, max_delay, jitter))
            attempt += 1
