"""
Purpose: Version-keyed store of decoded records backed by a JSON list file.
Constraints: Storage only; no network calls or extraction.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from lune_nuance.core.models import DecodedRecord, MergeResult

logger = logging.getLogger(__name__)

RECORDS_DEFAULT_PATH = "nuance.json"


def _coerce_record(entry: Any) -> Optional[DecodedRecord]:
    if not isinstance(entry, Mapping):
        return None
    secret = entry.get("s")
    version = entry.get("v")
    if not isinstance(secret, str) or isinstance(version, bool):
        return None
    try:
        return DecodedRecord(secret=secret, version=int(version))
    except (TypeError, ValueError):
        return None


def load_records(path: Path) -> Dict[int, DecodedRecord]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        logger.warning(f"Could not read {path.name}: {exc}")
        return {}
    if not isinstance(data, list):
        logger.warning(f"{path.name} should contain a JSON list; ignoring it")
        return {}
    store: Dict[int, DecodedRecord] = {}
    for entry in data:
        record = _coerce_record(entry)
        if record is None:
            logger.warning(f"Skipping malformed entry in {path.name}: {entry!r}")
            continue
        store[record.version] = record
    return store


def sorted_records(store: Mapping[int, DecodedRecord]) -> List[DecodedRecord]:
    return [store[version] for version in sorted(store)]


def serialize_records(records: Iterable[DecodedRecord]) -> str:
    return json.dumps([record.to_dict() for record in records], indent=2)


def save_records(path: Path, records: Iterable[DecodedRecord]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_records(records), encoding="utf-8")


def merge_records(store: Mapping[int, DecodedRecord], incoming: Iterable[DecodedRecord]) -> MergeResult:
    """Merge ``incoming`` into a copy of ``store``.

    New versions are added, versions whose secret changed are overwritten and
    identical ones are left alone. The returned records are sorted by version.
    """
    merged: Dict[int, DecodedRecord] = dict(store)
    added = 0
    overwritten = 0
    for record in incoming:
        existing = merged.get(record.version)
        if existing is None:
            merged[record.version] = record
            added += 1
            logger.info(f"v{record.version} added (new version)", extra={"action": "merge.added", "details": {"version": record.version}})
        elif existing.secret != record.secret:
            merged[record.version] = record
            overwritten += 1
            logger.info(
                f"v{record.version} overwritten (secret changed)",
                extra={"action": "merge.overwritten", "details": {"version": record.version}},
            )
    return MergeResult(records=sorted_records(merged), added=added, overwritten=overwritten)


class RecordStore:
    """File-backed record store; writes only when a merge changed something."""

    def __init__(self, path: Path | str = RECORDS_DEFAULT_PATH):
        self.path = Path(path)
        self._records: Dict[int, DecodedRecord] = {}

    def load(self) -> "RecordStore":
        self._records = load_records(self.path)
        return self

    @property
    def records(self) -> List[DecodedRecord]:
        return sorted_records(self._records)

    def get(self, version: int) -> Optional[DecodedRecord]:
        return self._records.get(version)

    def __len__(self) -> int:
        return len(self._records)

    def merge(self, incoming: Iterable[DecodedRecord], persist: bool = True) -> MergeResult:
        result = merge_records(self._records, incoming)
        self._records = {record.version: record for record in result.records}
        if persist and result.has_changes:
            save_records(self.path, result.records)
            logger.info(
                f"{self.path.name} updated - {len(result.records)} total "
                f"({result.overwritten} overwritten, {result.added} new)",
                extra={"action": "store.saved", "details": {"total": len(result.records), "added": result.added, "overwritten": result.overwritten}},
            )
        elif persist:
            logger.info(
                f"No changes - {self.path.name} is current",
                extra={"action": "store.unchanged", "details": {"total": len(result.records)}},
            )
        return result
