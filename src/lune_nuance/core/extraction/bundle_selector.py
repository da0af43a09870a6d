"""
Purpose: Pick the payload-bearing bundle out of the fetched candidates.
Constraints: Pure selection over supplied text; no network calls.
"""

# Imports
from __future__ import annotations

import logging
from typing import Iterable

from lune_nuance.core.errors import NoPayloadFound
from lune_nuance.core.models import CandidateSource

logger = logging.getLogger(__name__)

XOR_MARKER = "charCodeAt(0)^"
FIELD_MARKER = "secret:"


# Public API
def is_payload_bundle(text: str, xor_marker: str = XOR_MARKER, field_marker: str = FIELD_MARKER) -> bool:
    return bool(text) and xor_marker in text and field_marker in text


def select_bundle(
    candidates: Iterable[CandidateSource],
    xor_marker: str = XOR_MARKER,
    field_marker: str = FIELD_MARKER,
) -> CandidateSource:
    """Return the first candidate carrying both markers.

    ``candidates`` may be a lazy iterator (the browser fetcher yields one bundle
    per request); iteration stops at the first match so later bundles are never
    fetched.
    """
    for candidate in candidates:
        if is_payload_bundle(candidate.text, xor_marker, field_marker):
            filename = candidate.url.rstrip("/").split("/")[-1] or candidate.url
            logger.info(
                f"[ MATCH ] Found secret bundle: {filename} ({len(candidate.text) / 1024:.0f} KB)",
                extra={"action": "bundle.match", "details": {"url": candidate.url, "size": len(candidate.text)}},
            )
            return candidate
    raise NoPayloadFound()
