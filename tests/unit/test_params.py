import pytest

from lune_nuance.core.errors import NoPayloadFound
from lune_nuance.core.extraction.params import (
    FALLBACK_PARAMS,
    build_params_pattern,
    extract_window,
    resolve_params,
)
from lune_nuance.core.models import ObfuscationParams

MARKER = "charCodeAt(0)^"


def test_resolves_modulus_and_offset():
    window = "let e=7,t=3,n=[];for(let s=0;s<i.length;s++)n.push(i[s].charCodeAt(0)^s%e+t)"
    resolution = resolve_params(window)
    assert resolution.resolved
    assert not resolution.is_fallback
    assert resolution.params == ObfuscationParams(modulus=7, offset=3)


def test_pattern_spans_newlines():
    window = "let  e=40,t=2,n=[];\nfor(;;){\n x.charCodeAt(0)^1 }"
    assert resolve_params(window).params == ObfuscationParams(40, 2)


def test_falls_back_when_pattern_missing():
    resolution = resolve_params("var x=1; y.charCodeAt(0)^2")
    assert resolution.is_fallback
    assert resolution.params == ObfuscationParams(modulus=33, offset=9)
    assert resolution.params == FALLBACK_PARAMS


def test_custom_fallback_and_zero_modulus():
    fallback = ObfuscationParams(5, 1)
    assert resolve_params("", fallback=fallback).params == fallback
    zero = resolve_params("let e=0,t=3,n=[];a.charCodeAt(0)^b", fallback=fallback)
    assert zero.is_fallback
    assert zero.params == fallback


def test_custom_marker_pattern():
    pattern = build_params_pattern("codePointAt(0)^")
    window = "let e=11,t=4,n=[];q.codePointAt(0)^w"
    assert resolve_params(window, pattern=pattern).params == ObfuscationParams(11, 4)


def test_extract_window_is_bounded():
    text = "a" * 5000 + MARKER + "b" * 5000
    window = extract_window(text, MARKER)
    assert len(window) == 4500
    assert window.startswith("a" * 3000)
    assert window[3000:].startswith(MARKER)


def test_extract_window_clamps_at_edges():
    text = "ab" + MARKER + "cd"
    assert extract_window(text, MARKER) == text
    assert extract_window(text, MARKER, before=1, after=3) == "bcha"


def test_extract_window_requires_marker():
    with pytest.raises(NoPayloadFound):
        extract_window("no marker here", MARKER)


def test_oversized_digits_fall_back():
    window = "let e=" + "9" * 5000 + ",t=3,n=[];x.charCodeAt(0)^1"
    resolution = resolve_params(window)
    assert resolution.is_fallback
    assert resolution.params == FALLBACK_PARAMS


def test_offset_outside_unicode_range_falls_back():
    window = "let e=5,t=%d,n=[];x.charCodeAt(0)^1" % (0x10FFFF + 1)
    assert resolve_params(window).is_fallback
