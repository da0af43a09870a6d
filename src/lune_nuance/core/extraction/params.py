"""
Purpose: Recover the XOR modulus/offset pair from the text around the XOR idiom.
Constraints: Never fails; falls back to fixed constants when the pattern drifts.
"""

# Imports
from __future__ import annotations

import logging
import re
from typing import Optional, Pattern

from lune_nuance.core.errors import NoPayloadFound
from lune_nuance.core.models import ObfuscationParams, ParamResolution

logger = logging.getLogger(__name__)

WINDOW_BEFORE = 3000
WINDOW_AFTER = 1500
FALLBACK_PARAMS = ObfuscationParams(modulus=33, offset=9)
# Masks past the Unicode range keep their high bits through XOR and never decode.
MAX_OFFSET = 0x10FFFF

# let a=33,b=9,c=[]; ... charCodeAt(0)^
_PARAMS_TEMPLATE = r"let\s+(\w)=(\d+),(\w)=(\d+),(\w)=\[\];.*?{marker}"


def build_params_pattern(xor_marker: str) -> Pattern[str]:
    return re.compile(_PARAMS_TEMPLATE.format(marker=re.escape(xor_marker)), re.DOTALL)


_DEFAULT_PATTERN = build_params_pattern("charCodeAt(0)^")


# Public API
def extract_window(
    text: str,
    marker: str,
    before: int = WINDOW_BEFORE,
    after: int = WINDOW_AFTER,
) -> str:
    """Slice ``before`` chars ahead of and ``after`` chars past the first marker."""
    index = text.find(marker)
    if index == -1:
        raise NoPayloadFound(f"Marker {marker!r} not present in payload")
    start = max(0, index - before)
    end = min(len(text), index + after)
    return text[start:end]


def resolve_params(
    window: str,
    fallback: ObfuscationParams = FALLBACK_PARAMS,
    pattern: Optional[Pattern[str]] = None,
) -> ParamResolution:
    match = (pattern or _DEFAULT_PATTERN).search(window)
    if not match:
        logger.info(
            f"Using fallback keys: {{ mod: {fallback.modulus}, offset: {fallback.offset} }}",
            extra={"action": "params.fallback", "details": {"modulus": fallback.modulus, "offset": fallback.offset}},
        )
        return ParamResolution(params=fallback, resolved=False)

    try:
        params = ObfuscationParams(modulus=int(match.group(2)), offset=int(match.group(4)))
    except ValueError as exc:
        logger.warning(
            f"Extracted keys are not usable integers ({exc}); using fallback keys",
            extra={"action": "params.fallback", "details": {"reason": "unparseable"}},
        )
        return ParamResolution(params=fallback, resolved=False)
    if params.modulus <= 0 or params.offset > MAX_OFFSET:
        logger.warning(
            f"Extracted keys {{ mod: {params.modulus}, offset: {params.offset} }} are unusable; using fallback keys",
            extra={"action": "params.fallback", "details": {"reason": "out_of_range"}},
        )
        return ParamResolution(params=fallback, resolved=False)
    logger.info(
        f"Keys Extracted: {{ mod: {params.modulus}, offset: {params.offset} }}",
        extra={"action": "params.resolved", "details": {"modulus": params.modulus, "offset": params.offset}},
    )
    return ParamResolution(params=params, resolved=True)
