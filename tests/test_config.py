"""Tests for YAML/env configuration loading."""

from pathlib import Path

import pytest

from bountyboard.config import BoardConfig, ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("BOUNTYBOARD_DB", "BOUNTYBOARD_API_URL", "BOUNTYBOARD_API_SECRET"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_when_file_missing(tmp_path):
    cfg = BoardConfig.load(str(tmp_path / "missing.yaml"))
    assert cfg.port == 3000
    assert cfg.save_debounce_ms == 500
    assert cfg.max_retries == 3
    assert cfg.storage_key == "bounty-board-data"
    assert not cfg.db_path.startswith("~")


def test_yaml_values_and_unknown_keys(tmp_path):
    path = tmp_path / "bountyboard.yaml"
    path.write_text(
        "port: 8080\n"
        "save_debounce_ms: 250\n"
        "db_path: ~/boards/team.db\n"
        "colour_scheme: dark\n"
    )
    cfg = BoardConfig.load(str(path))
    assert cfg.port == 8080
    assert cfg.save_debounce_ms == 250
    assert cfg.db_path == str(Path.home() / "boards" / "team.db")


def test_unreadable_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "bountyboard.yaml"
    path.write_text("port: [unclosed\n")
    assert BoardConfig.load(str(path)).port == 3000


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "bountyboard.yaml"
    path.write_text("api_url: http://from-file:3000\napi_secret: file-secret\n")
    monkeypatch.setenv("BOUNTYBOARD_API_URL", "http://from-env:3000")
    monkeypatch.setenv("BOUNTYBOARD_API_SECRET", "env-secret")
    monkeypatch.setenv("BOUNTYBOARD_DB", str(tmp_path / "env.db"))

    cfg = BoardConfig.load(str(path))

    assert cfg.api_url == "http://from-env:3000"
    assert cfg.api_secret == "env-secret"
    assert cfg.db_path == str(tmp_path / "env.db")


@pytest.mark.parametrize("field,value", [
    ("max_retries", -1),
    ("save_debounce_ms", -5),
    ("sweep_interval_secs", 0),
    ("max_document_bytes", 0),
])
def test_invalid_values_rejected(tmp_path, field, value):
    path = tmp_path / "bountyboard.yaml"
    path.write_text(f"{field}: {value}\n")
    with pytest.raises(ConfigError):
        BoardConfig.load(str(path))
