import base64
import logging

import pytest

from lune_nuance.core.metrics import get_metrics


def obfuscate(plain: str, modulus: int, offset: int) -> str:
    return "".join(chr(ord(ch) ^ ((i % modulus) + offset)) for i, ch in enumerate(plain))


def js_literal(value: str, quote: str = '"') -> str:
    escaped = value.replace("\\", "\\\\").replace(quote, "\\" + quote)
    return f"{quote}{escaped}{quote}"


def expected_b32(plain: str) -> str:
    return base64.b32encode(plain.encode("utf-8")).decode("ascii").rstrip("=")


def build_bundle(secrets, modulus=33, offset=9, with_params=True, padding=400):
    """Minified-looking bundle with the XOR loop and one object per (plain, version)."""
    entries = ",".join(
        "{secret:%s,version:%d}" % (js_literal(obfuscate(plain, modulus, offset)), version)
        for plain, version in secrets
    )
    params = f"let e={modulus},t={offset},n=[];" if with_params else "var q=[];"
    return (
        "!function(){var a=1;" + "x" * padding + "}();"
        + f"const r=[{entries}];"
        + params
        + "for(let s=0;s<i.length;s++)n.push(i[s].charCodeAt(0)^s%e+t);"
        + "function o(){return 42}" + "y" * padding
    )


@pytest.fixture
def bundle_factory():
    return build_bundle


@pytest.fixture(autouse=True)
def _quiet_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ENABLE_ROOT_LOGGER", "0")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("NUANCE_CONFIG_DIR", str(tmp_path / "config"))
    for var in ("NUANCE_JOIN_MODE", "NUANCE_RECORDS_PATH", "NUANCE_FETCH_MODE", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    get_metrics().reset()
    logging.getLogger("lune_nuance").propagate = True
    yield
