"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``SHEETS_SNAPSHOT_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The snapshot stage, the sheets client and every CLI command receive an
``AppConfig`` instance — never raw dicts or individual env var lookups
scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class SourceConfig(BaseModel):
    """One published sheet tab: output key, display name, and tab GID."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    gid: str

    @field_validator("key", "gid")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Source key and gid must be non-empty.")
        return v


class SheetsConfig(BaseModel):
    """The source spreadsheet and the ordered list of tabs to export."""

    model_config = ConfigDict(frozen=True)

    sheet_id: str = ""
    sources: list[SourceConfig] = []

    @field_validator("sources")
    @classmethod
    def validate_unique_keys(cls, v: list[SourceConfig]) -> list[SourceConfig]:
        seen: set[str] = set()
        dupes: set[str] = set()
        for source in v:
            if source.key in seen:
                dupes.add(source.key)
            seen.add(source.key)
        if dupes:
            raise ValueError(f"Duplicate source keys: {sorted(dupes)}.")
        return v


class FetchConfig(BaseModel):
    """HTTP settings for the CSV export endpoint."""

    model_config = ConfigDict(frozen=True)

    url_template: str = (
        "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"
    )
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_seconds: float = 1.0
    cache_bust: bool = True
    user_agent: str = "sheets-snapshot/0.1"

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {v}.")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_retries must be >= 0, got {v}.")
        return v

    @field_validator("backoff_seconds")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"backoff_seconds must be >= 0, got {v}.")
        return v


class ParserConfig(BaseModel):
    """CSV parser behaviour switches."""

    model_config = ConfigDict(frozen=True)

    preserve_quoted_cr: bool = False


class OutputConfig(BaseModel):
    """Where and how the snapshot artifact is written."""

    model_config = ConfigDict(frozen=True)

    path: str = "public/report-data.json"
    indent: Optional[int] = None     # None → compact single-line JSON


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class SchedulerConfig(BaseModel):
    """Timer settings for ``start-scheduler``."""

    model_config = ConfigDict(frozen=True)

    interval_minutes: int = 60
    run_timeout_seconds: int = 900

    @field_validator("interval_minutes", "run_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Scheduler intervals must be >= 1, got {v}.")
        return v


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    sheets: SheetsConfig = SheetsConfig()
    fetch: FetchConfig = FetchConfig()
    parser: ParserConfig = ParserConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Pass --config or create config/default.toml first."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply SHEETS_SNAPSHOT_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``.

    Lists (e.g. ``sheets.sources``) are replaced wholesale, not concatenated.
    """
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SHEETS_SNAPSHOT_* env vars to the raw config dict.

    Supported overrides:
      SHEETS_SNAPSHOT_SHEET_ID     → raw["sheets"]["sheet_id"]
      SHEETS_SNAPSHOT_OUTPUT_PATH  → raw["output"]["path"]
      SHEETS_SNAPSHOT_TIMEOUT      → raw["fetch"]["timeout_seconds"]
      SHEETS_SNAPSHOT_LOG_LEVEL    → raw["logging"]["level"]
      SHEETS_SNAPSHOT_DEBUG        → raw["debug"]
    """
    if sheet_id := os.environ.get("SHEETS_SNAPSHOT_SHEET_ID"):
        raw.setdefault("sheets", {})["sheet_id"] = sheet_id

    if output_path := os.environ.get("SHEETS_SNAPSHOT_OUTPUT_PATH"):
        raw.setdefault("output", {})["path"] = output_path

    if timeout := os.environ.get("SHEETS_SNAPSHOT_TIMEOUT"):
        raw.setdefault("fetch", {})["timeout_seconds"] = float(timeout)

    if log_level := os.environ.get("SHEETS_SNAPSHOT_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SHEETS_SNAPSHOT_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})
    sheets_raw = dict(raw.get("sheets", {}))
    sheets_raw["sources"] = [
        SourceConfig(**src) for src in sheets_raw.get("sources", [])
    ]

    return AppConfig(
        sheets=SheetsConfig(**sheets_raw),
        fetch=FetchConfig(**raw.get("fetch", {})),
        parser=ParserConfig(**raw.get("parser", {})),
        output=OutputConfig(**raw.get("output", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        scheduler=SchedulerConfig(**raw.get("scheduler", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
