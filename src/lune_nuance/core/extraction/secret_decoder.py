"""
Purpose: Undo the per-character XOR mask and re-encode secrets as unpadded Base32.
Constraints: Pure transforms; a failure affects only the pair being decoded.
"""

# Imports
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from lune_nuance.core.errors import PairDecodeFailure
from lune_nuance.core.models import DecodedRecord, ObfuscationParams, RawPair

logger = logging.getLogger(__name__)

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
JOIN_CODEPOINTS = "codepoints"
JOIN_DECIMAL = "decimal"


# Public API
def xor_transform(secret: str, params: ObfuscationParams) -> List[int]:
    return [ord(char) ^ ((index % params.modulus) + params.offset) for index, char in enumerate(secret)]


def join_values(values: Sequence[int], mode: str = JOIN_CODEPOINTS) -> str:
    """Build the intermediate string from XOR results.

    ``codepoints`` treats each value as a character; ``decimal`` concatenates
    their decimal renderings, which is how the web player derives its TOTP seed.
    """
    if mode == JOIN_CODEPOINTS:
        return "".join(chr(value) for value in values)
    if mode == JOIN_DECIMAL:
        return "".join(str(value) for value in values)
    raise ValueError(f"Unknown join mode: {mode}")


def to_hex(data: bytes) -> str:
    return "".join(f"{byte:02x}" for byte in data)


def from_hex(hex_text: str) -> bytes:
    return bytes(int(hex_text[i : i + 2], 16) for i in range(0, len(hex_text), 2))


def base32_encode(data: bytes) -> str:
    """RFC 4648 Base32 without padding, packed MSB-first."""
    out: List[str] = []
    value = 0
    bits = 0
    for byte in data:
        value = (value << 8) | byte
        bits += 8
        while bits >= 5:
            out.append(BASE32_ALPHABET[(value >> (bits - 5)) & 31])
            bits -= 5
        value &= (1 << bits) - 1
    if bits > 0:
        out.append(BASE32_ALPHABET[(value << (5 - bits)) & 31])
    return "".join(out)


def base32_decode(text: str) -> bytes:
    """Inverse of :func:`base32_encode`; trailing partial bits are dropped."""
    out = bytearray()
    value = 0
    bits = 0
    for char in text.rstrip("=").upper():
        index = BASE32_ALPHABET.find(char)
        if index == -1:
            raise ValueError(f"Invalid Base32 character: {char!r}")
        value = (value << 5) | index
        bits += 5
        if bits >= 8:
            out.append((value >> (bits - 8)) & 0xFF)
            bits -= 8
            value &= (1 << bits) - 1
    return bytes(out)


def decode_secret(obfuscated: str, params: ObfuscationParams, join_mode: str = JOIN_CODEPOINTS) -> str:
    intermediate = join_values(xor_transform(obfuscated, params), join_mode)
    hex_text = to_hex(intermediate.encode("utf-8"))
    return base32_encode(from_hex(hex_text))


def decode_pair(pair: RawPair, params: ObfuscationParams, join_mode: str = JOIN_CODEPOINTS) -> DecodedRecord:
    try:
        secret = decode_secret(pair.secret, params, join_mode)
    except (ValueError, UnicodeError, OverflowError) as exc:
        raise PairDecodeFailure(pair.version, exc) from exc
    return DecodedRecord(secret=secret, version=pair.version)


def decode_pairs(
    pairs: Iterable[RawPair],
    params: ObfuscationParams,
    join_mode: str = JOIN_CODEPOINTS,
) -> Tuple[List[DecodedRecord], List[PairDecodeFailure]]:
    decoded: List[DecodedRecord] = []
    failures: List[PairDecodeFailure] = []
    for pair in pairs:
        try:
            record = decode_pair(pair, params, join_mode)
        except PairDecodeFailure as exc:
            logger.warning(
                str(exc),
                extra={"action": "pair.decode_failed", "details": {"version": pair.version, "error": str(exc.cause)}},
            )
            failures.append(exc)
            continue
        decoded.append(record)
        logger.info(f"v{pair.version} nuance decoded successfully.")
    return decoded, failures
