"""
Tests for sheets_snapshot.config — layered TOML / env configuration.

Covers:
  - load_config(): explicit path, missing file, local.toml merge
  - SHEETS_SNAPSHOT_* env overrides
  - model validation (duplicate keys, bad timeout, bad log level)
  - the committed config/default.toml parses
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sheets_snapshot.config import (
    AppConfig,
    FetchConfig,
    LoggingConfig,
    SheetsConfig,
    SourceConfig,
    load_config,
)

_BASE_TOML = """
[sheets]
sheet_id = "abc123"

[[sheets.sources]]
key = "output"
name = "output"
gid = "0"

[[sheets.sources]]
key = "mafia"
name = "Mafia"
gid = "1431246161"

[fetch]
timeout_seconds = 12.5

[output]
path = "out/report.json"
"""


def _write(tmp_path: Path, content: str, name: str = "default.toml") -> Path:
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    return p


# ── load_config ───────────────────────────────────────────────────────────────

class TestLoadConfig:
    def test_reads_explicit_path(self, tmp_path):
        cfg = load_config(_write(tmp_path, _BASE_TOML))
        assert cfg.sheets.sheet_id == "abc123"
        assert [s.key for s in cfg.sheets.sources] == ["output", "mafia"]
        assert cfg.sheets.sources[1] == SourceConfig(key="mafia", name="Mafia", gid="1431246161")
        assert cfg.fetch.timeout_seconds == 12.5
        assert cfg.output.path == "out/report.json"

    def test_defaults_for_missing_sections(self, tmp_path):
        cfg = load_config(_write(tmp_path, _BASE_TOML))
        assert cfg.fetch.max_retries == 2
        assert cfg.parser.preserve_quoted_cr is False
        assert cfg.logging.level == "INFO"
        assert cfg.output.indent is None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_local_toml_overrides(self, tmp_path):
        path = _write(tmp_path, _BASE_TOML)
        _write(tmp_path, '[output]\npath = "local/out.json"\n', name="local.toml")
        cfg = load_config(path)
        assert cfg.output.path == "local/out.json"
        assert cfg.sheets.sheet_id == "abc123"

    def test_local_toml_replaces_source_list(self, tmp_path):
        path = _write(tmp_path, _BASE_TOML)
        _write(
            tmp_path,
            '[[sheets.sources]]\nkey = "only"\nname = "Only"\ngid = "9"\n',
            name="local.toml",
        )
        cfg = load_config(path)
        assert [s.key for s in cfg.sheets.sources] == ["only"]

    def test_committed_default_config_is_valid(self):
        root = Path(__file__).resolve().parent.parent
        cfg = load_config(root / "config" / "default.toml")
        assert cfg.sheets.sheet_id
        assert len(cfg.sheets.sources) == 8
        assert cfg.sheets.sources[0].key == "output"


# ── Env overrides ─────────────────────────────────────────────────────────────

class TestEnvOverrides:
    def test_sheet_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEETS_SNAPSHOT_SHEET_ID", "from-env")
        assert load_config(_write(tmp_path, _BASE_TOML)).sheets.sheet_id == "from-env"

    def test_output_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEETS_SNAPSHOT_OUTPUT_PATH", "/tmp/x.json")
        assert load_config(_write(tmp_path, _BASE_TOML)).output.path == "/tmp/x.json"

    def test_timeout(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEETS_SNAPSHOT_TIMEOUT", "5")
        assert load_config(_write(tmp_path, _BASE_TOML)).fetch.timeout_seconds == 5.0

    def test_log_level_uppercased(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHEETS_SNAPSHOT_LOG_LEVEL", "debug")
        assert load_config(_write(tmp_path, _BASE_TOML)).logging.level == "DEBUG"

    @pytest.mark.parametrize("value, expected", [("1", True), ("true", True), ("no", False)])
    def test_debug(self, tmp_path, monkeypatch, value, expected):
        monkeypatch.setenv("SHEETS_SNAPSHOT_DEBUG", value)
        assert load_config(_write(tmp_path, _BASE_TOML)).debug is expected


# ── Validation ────────────────────────────────────────────────────────────────

class TestValidation:
    def test_duplicate_source_keys_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate source keys"):
            SheetsConfig(
                sheet_id="x",
                sources=[
                    SourceConfig(key="a", name="A", gid="1"),
                    SourceConfig(key="a", name="A2", gid="2"),
                ],
            )

    def test_blank_source_key_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig(key="  ", name="Blank", gid="1")

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            FetchConfig(timeout_seconds=0)

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            FetchConfig(max_retries=-1)

    def test_bad_log_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_invalid_toml_values_surface_as_validation_error(self, tmp_path):
        bad = _BASE_TOML.replace("timeout_seconds = 12.5", "timeout_seconds = -1")
        with pytest.raises(ValidationError):
            load_config(_write(tmp_path, bad))

    def test_app_config_is_frozen(self):
        with pytest.raises(ValidationError):
            AppConfig().debug = True
