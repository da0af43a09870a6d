import json

import pytest

from conftest import expected_b32
from lune_nuance.core.config_models import ExtractionSettings
from lune_nuance.core.errors import NoPairsFound
from lune_nuance.core.models import CandidateSource
from lune_nuance.core.pipeline import extract_records, run_scrape

SECRETS = [("0123456789012345", 61), ('q"uote\\slash', 59), ("plain-secret", 60)]


def sources(*texts):
    return [CandidateSource(url=f"https://cdn.example/{i}.js", text=t) for i, t in enumerate(texts)]


def test_end_to_end_writes_sorted_store(tmp_path, bundle_factory):
    store_path = tmp_path / "nuance.json"
    bundle = bundle_factory(SECRETS, modulus=17, offset=5)

    result = run_scrape(sources("vendor code", bundle), store_path)

    assert result.success
    assert result.source_url == "https://cdn.example/1.js"
    assert result.has_changes
    assert (result.added, result.overwritten) == (3, 0)
    assert [(r.version, r.secret) for r in result.records] == [
        (59, expected_b32('q"uote\\slash')),
        (60, expected_b32("plain-secret")),
        (61, expected_b32("0123456789012345")),
    ]
    saved = json.loads(store_path.read_text(encoding="utf-8"))
    assert [entry["v"] for entry in saved] == [59, 60, 61]
    assert set(saved[0]) == {"s", "v"}


def test_rerun_without_changes_leaves_file_alone(tmp_path, bundle_factory):
    store_path = tmp_path / "nuance.json"
    bundle = bundle_factory(SECRETS)
    assert run_scrape(sources(bundle), store_path).success
    before = store_path.read_bytes()

    again = run_scrape(sources(bundle), store_path)
    assert again.success
    assert not again.has_changes
    assert (again.added, again.overwritten) == (0, 0)
    assert store_path.read_bytes() == before


def test_changed_secret_overwrites_and_new_version_is_added(tmp_path, bundle_factory):
    store_path = tmp_path / "nuance.json"
    store_path.write_text(json.dumps([{"s": "OLDSECRET", "v": 61}, {"s": "KEEP", "v": 7}]), encoding="utf-8")

    result = run_scrape(sources(bundle_factory([("0123456789012345", 61), ("fresh", 62)])), store_path)
    assert (result.added, result.overwritten) == (1, 1)
    assert [r.version for r in result.records] == [7, 61, 62]
    assert result.records[0].secret == "KEEP"


def test_fallback_params_are_used_when_pattern_drifts(bundle_factory):
    bundle = bundle_factory([("abcdef", 1)], modulus=33, offset=9, with_params=False)
    extraction = extract_records(bundle)
    assert extraction.resolution.is_fallback
    assert extraction.records[0].secret == expected_b32("abcdef")


def test_decimal_join_mode(bundle_factory):
    bundle = bundle_factory([("AB", 1)], modulus=33, offset=9)
    extraction = extract_records(bundle, ExtractionSettings(join_mode="decimal"))
    assert extraction.records[0].secret == expected_b32("6566")


def test_no_payload_is_fatal_and_store_untouched(tmp_path):
    store_path = tmp_path / "nuance.json"
    store_path.write_text("[]", encoding="utf-8")
    result = run_scrape(sources("a", "b.charCodeAt(0)^1"), store_path)
    assert not result.success
    assert "No script containing secrets" in result.error
    assert store_path.read_text(encoding="utf-8") == "[]"


def test_no_pairs_is_fatal():
    text = "x.secret:void 0;" + "let e=3,t=1,n=[];n.charCodeAt(0)^e"
    with pytest.raises(NoPairsFound):
        extract_records(text)
    result = run_scrape(sources(text), "unused.json")
    assert not result.success
    assert result.error == "No secret/version pairs found"


def test_one_bad_pair_does_not_fail_the_run(tmp_path, bundle_factory):
    bundle = bundle_factory([("good", 2)], modulus=33, offset=9)
    bad_literal = '{secret:"%s",version:1},' % chr(0xD800 ^ 9)
    bundle = bundle.replace("const r=[", "const r=[" + bad_literal)

    result = run_scrape(sources(bundle), tmp_path / "nuance.json")
    assert result.success
    assert [r.version for r in result.records] == [2]


def test_every_pair_failing_is_fatal(tmp_path):
    text = '{secret:"%s",version:1};let e=33,t=9,n=[];n.charCodeAt(0)^e' % chr(0xD800 ^ 9)
    result = run_scrape(sources(text), tmp_path / "nuance.json")
    assert not result.success
    assert result.error == "No nuance could be extracted"
    assert not (tmp_path / "nuance.json").exists()


def test_unexpected_error_is_reported_not_raised(tmp_path):
    def exploding():
        raise RuntimeError("browser crashed")
        yield  # pragma: no cover

    result = run_scrape(exploding(), tmp_path / "nuance.json")
    assert not result.success
    assert result.error == "browser crashed"


def test_zero_modulus_in_bundle_uses_fallback(bundle_factory):
    bundle = bundle_factory([("abcdef", 1)], modulus=33, offset=9).replace("let e=33,", "let e=0,")
    extraction = extract_records(bundle)
    assert extraction.resolution.is_fallback
    assert extraction.records[0].secret == expected_b32("abcdef")


def test_oversized_params_in_bundle_use_fallback(tmp_path, bundle_factory):
    bundle = bundle_factory([("abcdef", 1)], modulus=33, offset=9).replace("let e=33,", "let e=" + "7" * 5000 + ",")
    wide = ExtractionSettings(window_before=20000)
    assert extract_records(bundle, wide).resolution.is_fallback

    result = run_scrape(sources(bundle), tmp_path / "nuance.json", wide)
    assert result.success
    assert result.records[0].secret == expected_b32("abcdef")
