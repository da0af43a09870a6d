"""
Purpose: Targeted tokenizer that finds every secret/version pair in the payload window.
Constraints: Substring and regex scanning only; not a JavaScript parser.
"""

# Imports
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from lune_nuance.core.models import RawPair

logger = logging.getLogger(__name__)

FIELD_MARKER = "secret:"
VERSION_LOOKAHEAD = 100
QUOTE_CHARS = ("'", '"')
VERSION_PATTERN = re.compile(r"version:(\d+)")


@dataclass(frozen=True)
class ScanState:
    """Tokenizer position; every step returns a new state with a larger cursor."""

    cursor: int = 0


@dataclass(frozen=True)
class StepResult:
    state: Optional[ScanState]
    pair: Optional[RawPair] = None


# Public API
def read_quoted(text: str, quote_pos: int) -> Tuple[str, int]:
    """Read a quoted literal starting at ``quote_pos``.

    Returns the unescaped value and the index of the closing quote, or
    ``len(text)`` when the literal is unterminated.
    """
    quote = text[quote_pos]
    buffer: List[str] = []
    pos = quote_pos + 1
    while pos < len(text):
        char = text[pos]
        if char == "\\":
            buffer.append(text[pos + 1 : pos + 2])
            pos += 2
        elif char == quote:
            break
        else:
            buffer.append(char)
            pos += 1
    return "".join(buffer), min(pos, len(text))


def find_version(text: str, start: int, lookahead: int = VERSION_LOOKAHEAD, pattern: Pattern[str] = VERSION_PATTERN) -> Optional[int]:
    match = pattern.search(text, start, start + lookahead)
    if not match:
        return None
    return int(match.group(1))


def scan_step(
    text: str,
    state: ScanState,
    field_marker: str = FIELD_MARKER,
    lookahead: int = VERSION_LOOKAHEAD,
    version_pattern: Pattern[str] = VERSION_PATTERN,
) -> StepResult:
    """Advance the scan by one marker occurrence.

    A ``None`` state means no marker remains and scanning is finished.
    """
    marker_pos = text.find(field_marker, state.cursor)
    if marker_pos == -1:
        return StepResult(state=None)

    quote_pos = marker_pos + len(field_marker)
    if quote_pos >= len(text) or text[quote_pos] not in QUOTE_CHARS:
        return StepResult(state=ScanState(cursor=marker_pos + 1))

    logger.debug(f"Extracting nuance at position {marker_pos}")
    value, close_pos = read_quoted(text, quote_pos)
    next_state = ScanState(cursor=close_pos + 1)

    version = find_version(text, close_pos, lookahead, version_pattern)
    if version is None:
        logger.debug(f"No version marker within {lookahead} chars of secret at {marker_pos}; skipping")
        return StepResult(state=next_state)

    logger.info(f"  -> Nuance Found: Version {version}", extra={"action": "pair.found", "details": {"version": version}})
    return StepResult(state=next_state, pair=RawPair(secret=value, version=version))


def scan_pairs(
    text: str,
    field_marker: str = FIELD_MARKER,
    lookahead: int = VERSION_LOOKAHEAD,
    version_pattern: Optional[Pattern[str]] = None,
) -> List[RawPair]:
    pattern = version_pattern or VERSION_PATTERN
    pairs: List[RawPair] = []
    state: Optional[ScanState] = ScanState()
    while state is not None:
        result = scan_step(text, state, field_marker, lookahead, pattern)
        if result.pair is not None:
            pairs.append(result.pair)
        state = result.state
    return pairs
