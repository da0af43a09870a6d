import json

import pytest

from conftest import expected_b32
from lune_nuance import cli
from lune_nuance.core.config import ConfigManager
from lune_nuance.core.models import CandidateSource
from lune_nuance.runner import run_forever, scrape_once


class FakeFetcher:
    def __init__(self, texts, fail_on_enter=False):
        self.texts = texts
        self.fail_on_enter = fail_on_enter
        self.closed = False

    def __enter__(self):
        if self.fail_on_enter:
            raise RuntimeError("chrome not found")
        return self

    def __exit__(self, *exc):
        self.closed = True

    def iter_sources(self):
        for i, text in enumerate(self.texts):
            yield CandidateSource(url=f"https://cdn/{i}.js", text=text)


def make_config(tmp_path):
    config = ConfigManager(config_dir=tmp_path / "config").load_all()
    config.scraper = config.scraper.model_copy(update={"records_path": str(tmp_path / "nuance.json")})
    return config


def test_scrape_once_closes_fetcher(tmp_path, bundle_factory):
    config = make_config(tmp_path)
    fetcher = FakeFetcher(["noise", bundle_factory([("seed", 3)])])
    result = scrape_once(config, lambda _cfg: fetcher)
    assert result.success
    assert fetcher.closed
    assert json.loads((tmp_path / "nuance.json").read_text()) == [{"s": expected_b32("seed"), "v": 3}]


def test_scrape_once_reports_browser_start_failure(tmp_path):
    config = make_config(tmp_path)
    result = scrape_once(config, lambda _cfg: FakeFetcher([], fail_on_enter=True))
    assert not result.success
    assert "chrome not found" in result.error


def test_run_forever_waits_between_runs(tmp_path, bundle_factory):
    config = make_config(tmp_path)
    config.runner = config.runner.model_copy(update={"check_interval_hours": 0.5})
    sleeps = []
    runs = []

    def factory(_cfg):
        runs.append(1)
        return FakeFetcher([bundle_factory([("seed", 3)])])

    run_forever(config, factory, sleep=sleeps.append, max_runs=3)
    assert len(runs) == 3
    assert sleeps == [1800.0, 1800.0]


def test_cli_decode_and_show(tmp_path, bundle_factory, capsys):
    bundle = tmp_path / "web-player.js"
    bundle.write_text(bundle_factory([("alpha", 1), ("beta", 2)]), encoding="utf-8")
    records = tmp_path / "store.json"

    assert cli.main(["--records", str(records), "decode", str(bundle), "--dry-run"]) == 0
    assert not records.exists()
    printed = json.loads(capsys.readouterr().out)
    assert [entry["v"] for entry in printed] == [1, 2]

    assert cli.main(["--records", str(records), "decode", str(bundle)]) == 0
    capsys.readouterr()
    assert cli.main(["--records", str(records), "show"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown == [{"s": expected_b32("alpha"), "v": 1}, {"s": expected_b32("beta"), "v": 2}]


def test_cli_decode_failure_exit_code(tmp_path):
    junk = tmp_path / "junk.js"
    junk.write_text("nothing to see", encoding="utf-8")
    assert cli.main(["--records", str(tmp_path / "s.json"), "decode", str(junk)]) == 1


def test_scrape_once_writes_metrics_snapshot(tmp_path, bundle_factory, monkeypatch):
    logs = tmp_path / "logs"
    monkeypatch.setenv("LOG_DIR", str(logs))
    monkeypatch.setenv("METRICS_ENABLED", "1")
    config = make_config(tmp_path)
    scrape_once(config, lambda _cfg: FakeFetcher([bundle_factory([("seed", 3)])]))
    scrape_once(config, lambda _cfg: FakeFetcher(["noise"]))

    snapshots = [json.loads(line) for line in (logs / "metrics.jsonl").read_text(encoding="utf-8").splitlines()]
    assert len(snapshots) == 2
    assert snapshots[0]["totals"]["run"] == 1
    assert snapshots[1]["totals"]["run"] == 2
    assert snapshots[1]["errors"]["run"] == 1


def test_cli_records_path_is_relative_to_working_directory(tmp_path, bundle_factory, monkeypatch):
    work = tmp_path / "work"
    work.mkdir()
    bundle = tmp_path / "web-player.js"
    bundle.write_text(bundle_factory([("alpha", 1)]), encoding="utf-8")
    monkeypatch.chdir(work)

    assert cli.main(["--records", "out.json", "decode", str(bundle)]) == 0
    assert json.loads((work / "out.json").read_text()) == [{"s": expected_b32("alpha"), "v": 1}]
    assert not (tmp_path / "out.json").exists()


def test_store_options_accepted_after_subcommand():
    parser = cli.build_parser()
    after = parser.parse_args(["scrape", "--once", "--records", "a.json", "--join-mode", "decimal"])
    assert after.records == "a.json"
    assert after.join_mode == "decimal"

    before = parser.parse_args(["--records", "b.json", "scrape"])
    assert before.records == "b.json"
    assert before.join_mode is None


def test_script_wrapper_arguments_reach_config(tmp_path, monkeypatch):
    seen = {}

    def fake_scrape_once(config):
        seen["records"] = config.records_path()
        seen["join_mode"] = config.extraction.join_mode
        return scrape_once(config, lambda _cfg: FakeFetcher([]))

    monkeypatch.setattr(cli, "scrape_once", fake_scrape_once)
    target = tmp_path / "wrapped.json"
    assert cli.main(["scrape", "--once", "--records", str(target), "--join-mode", "decimal"]) == 1
    assert seen == {"records": target.resolve(), "join_mode": "decimal"}


@pytest.mark.parametrize("value", ["-1", "0", "soon"])
def test_interval_hours_must_be_positive(value, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["scrape", "--interval-hours", value])
    assert excinfo.value.code == 2
    assert "--interval-hours" in capsys.readouterr().err
