"""
Purpose: Shared data models for cross-module communication.
Constraints: Data containers only; no logic.
"""

# Imports
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Public API
@dataclass(frozen=True)
class CandidateSource:
    """One fetched script bundle."""

    url: str
    text: str


@dataclass(frozen=True)
class ObfuscationParams:
    modulus: int
    offset: int


@dataclass(frozen=True)
class ParamResolution:
    """Outcome of the parameter search: either resolved from text or the fallback pair."""

    params: ObfuscationParams
    resolved: bool

    @property
    def is_fallback(self) -> bool:
        return not self.resolved


@dataclass(frozen=True)
class RawPair:
    secret: str
    version: int


@dataclass(frozen=True)
class DecodedRecord:
    secret: str
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return {"s": self.secret, "v": self.version}


@dataclass
class MergeResult:
    records: List[DecodedRecord]
    added: int = 0
    overwritten: int = 0

    @property
    def has_changes(self) -> bool:
        return (self.added + self.overwritten) > 0


@dataclass
class RunResult:
    success: bool
    records: List[DecodedRecord] = field(default_factory=list)
    has_changes: bool = False
    added: int = 0
    overwritten: int = 0
    source_url: Optional[str] = None
    error: Optional[str] = None
