# TrackerSync test scripts
from __future__ import annotations

from pathlib import Path

from ts_platform import config_base as cb


def test_defaults_without_config_file(config_base: Path) -> None:
    cfg = cb.load_config()

    assert cfg["gist"]["filename"] == "tracker-data.json"
    assert cfg["sync"]["debounce_ms"] == 500
    assert cfg["sync"]["tombstone_clear"] == "confirmed"
    assert cb.is_configured(cfg) is False


def test_garbled_config_falls_back_to_defaults(config_base: Path) -> None:
    (config_base / "config.json").write_text("{oops", "utf-8")

    assert cb.load_config()["sync"]["load_on_start"] is True


def test_update_config_merges_and_normalises(config_base: Path) -> None:
    cb.update_config({"gist": {"token": " tok ", "gist_id": "g1"}, "sync": {"tombstone_clear": "bogus"}})

    cfg = cb.load_config()

    assert cfg["gist"]["token"] == "tok"
    assert cfg["gist"]["api_base"] == "https://api.github.com"
    assert cfg["sync"]["tombstone_clear"] == "confirmed"
    assert cb.is_configured(cfg) is True
    assert (config_base / "config.json").exists()


def test_state_dir_defaults_under_config_base(config_base: Path) -> None:
    assert cb.state_dir(cb.load_config()) == config_base / "state"
    assert cb.state_dir({"runtime": {"state_dir": "/tmp/x"}}) == Path("/tmp/x")


def test_masked_hides_the_token() -> None:
    cfg = {"gist": {"token": "ghp_abcdefghijkl", "gist_id": "g1"}}

    out = cb.masked(cfg)

    assert "abcdefghijkl" not in out["gist"]["token"]
    assert out["gist"]["gist_id"] == "g1"
    assert cfg["gist"]["token"] == "ghp_abcdefghijkl"
