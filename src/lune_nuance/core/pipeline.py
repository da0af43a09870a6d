"""
Purpose: One scrape run: select bundle, resolve params, scan, decode, merge.
Constraints: No network or browser code; fetched bundles come in as CandidateSource.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from lune_nuance.core.config_models import ExtractionSettings
from lune_nuance.core.errors import NoPairsFound, NuanceError, PairDecodeFailure
from lune_nuance.core.extraction.bundle_selector import select_bundle
from lune_nuance.core.extraction.pair_scanner import scan_pairs
from lune_nuance.core.extraction.params import build_params_pattern, extract_window, resolve_params
from lune_nuance.core.extraction.secret_decoder import decode_pairs
from lune_nuance.core.metrics import get_metrics
from lune_nuance.core.models import (
    CandidateSource,
    DecodedRecord,
    ObfuscationParams,
    ParamResolution,
    RawPair,
    RunResult,
)
from lune_nuance.core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class Extraction:
    """Everything recovered from one payload bundle."""

    resolution: ParamResolution
    pairs: List[RawPair] = field(default_factory=list)
    records: List[DecodedRecord] = field(default_factory=list)
    failures: List[PairDecodeFailure] = field(default_factory=list)


def extract_records(text: str, settings: Optional[ExtractionSettings] = None) -> Extraction:
    """Run the parameter resolver, pair scanner and decoder over one payload.

    Raises :class:`NoPairsFound` when the scanner finds nothing, or when every
    pair failed to decode.
    """
    settings = settings or ExtractionSettings()
    logger.info("Analyzing logic structure for cryptographic keys...")
    window = extract_window(text, settings.xor_marker, settings.window_before, settings.window_after)

    fallback = ObfuscationParams(modulus=settings.fallback_modulus, offset=settings.fallback_offset)
    resolution = resolve_params(window, fallback=fallback, pattern=build_params_pattern(settings.xor_marker))

    logger.info("Searching for secrets in extracted logic pool...")
    pairs = scan_pairs(
        window,
        field_marker=settings.field_marker,
        lookahead=settings.version_lookahead,
        version_pattern=re.compile(settings.version_pattern),
    )
    if not pairs:
        raise NoPairsFound()
    get_metrics().record("pairs.scanned", count=len(pairs))

    logger.info(f"Finalizing decoding for {len(pairs)} nuance...")
    records, failures = decode_pairs(pairs, resolution.params, settings.join_mode)
    if not records:
        raise NoPairsFound("No nuance could be extracted")
    return Extraction(resolution=resolution, pairs=pairs, records=records, failures=failures)


def run_scrape(
    sources: Iterable[CandidateSource],
    store: Union[RecordStore, Path, str],
    settings: Optional[ExtractionSettings] = None,
    persist: bool = True,
) -> RunResult:
    """Full run over candidate bundles; reports failures as a result instead of raising.

    With ``persist=False`` the merge is computed but the store file is never written.
    """
    settings = settings or ExtractionSettings()
    record_store = store if isinstance(store, RecordStore) else RecordStore(store)
    metrics = get_metrics()
    logger.info("Starting nuance extraction...")

    try:
        bundle = select_bundle(sources, settings.xor_marker, settings.field_marker)
        extraction = extract_records(bundle.text, settings)
        logger.info(f"Extracted {len(extraction.records)} nuance(s)")

        record_store.load()
        merge = record_store.merge(extraction.records, persist=persist)
    except NuanceError as exc:
        logger.error(str(exc), extra={"action": "run.failed", "details": {"reason": str(exc)}})
        metrics.record("run", success=False)
        return RunResult(success=False, error=str(exc))
    except Exception as exc:  # noqa: BLE001 - run boundary reports every failure as a result
        logger.exception(f"Unexpected scrape failure: {exc}")
        metrics.record("run", success=False)
        return RunResult(success=False, error=str(exc) or type(exc).__name__)

    metrics.record("run", success=True)
    return RunResult(
        success=True,
        records=merge.records,
        has_changes=merge.has_changes,
        added=merge.added,
        overwritten=merge.overwritten,
        source_url=bundle.url,
    )
