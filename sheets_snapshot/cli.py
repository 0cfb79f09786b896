"""
sheets-snapshot — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (snapshot build, local parse, inspection, scheduler).
  5. Report result to stdout.

Install and run::

    pip install -e .
    sheets-snapshot --help
    sheets-snapshot run
    sheets-snapshot validate-config --full
    sheets-snapshot parse-file export.csv --limit 5
    sheets-snapshot show-snapshot
    sheets-snapshot start-scheduler --interval-minutes 30

Exit codes:
  0 — snapshot written (including runs where some sources came back empty)
  1 — configuration error, or the snapshot could not be written (or read)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="sheets-snapshot",
    help="Fetch published spreadsheet tabs and write one JSON snapshot.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from sheets_snapshot.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config; ``debug = true`` forces DEBUG level."""
    from sheets_snapshot.utils.logging import configure_logging

    logging_cfg = config.logging
    if config.debug:
        logging_cfg = logging_cfg.model_copy(update={"level": "DEBUG"})
    configure_logging(logging_cfg)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("run")
def run(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Override output path from config (e.g. public/report-data.json).",
    ),
) -> None:
    """Fetch every configured tab, parse it, and write the snapshot.

    \b
    A tab that fails to download (or parse) is written as an empty list and
    the run still succeeds. The previous snapshot is only replaced once the
    new one has been fully serialized.
    """
    from sheets_snapshot.errors import SnapshotError
    from sheets_snapshot.pipeline.build_snapshot import SnapshotStage
    from sheets_snapshot.reporting.formatters import format_run_summary, summarize_snapshot

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    typer.echo("Fetching sheet data...")
    typer.echo(f"  Sheet ID: {config.sheets.sheet_id}")
    typer.echo("")

    stage = SnapshotStage(config=config)
    try:
        run_meta = stage.run(output_path=Path(output) if output else None)
    except SnapshotError as exc:
        typer.echo(f"[ERROR] Snapshot failed: {exc}", err=True)
        raise typer.Exit(code=1)

    summaries = summarize_snapshot(stage.snapshot, config.sheets.sources)
    typer.echo("")
    typer.echo(f"[OK] Snapshot written to {stage.output_path}")
    typer.echo(
        format_run_summary(summaries, stage.bytes_written, run_meta.sources_failed)
    )
    if run_meta.sources_failed:
        typer.echo(
            f"  {len(run_meta.sources_failed)} source(s) failed and were written "
            f"as empty: {', '.join(run_meta.sources_failed)}"
        )


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Sheet ID:         {config.sheets.sheet_id or '(not set)'}")
    typer.echo(f"  Sources:          {len(config.sheets.sources)}")
    for source in config.sheets.sources:
        typer.echo(f"    {source.key:<24} gid={source.gid:<12} {source.name}")
    typer.echo(f"  Output path:      {config.output.path}")
    typer.echo(f"  Fetch timeout:    {config.fetch.timeout_seconds}s")
    typer.echo(f"  Fetch retries:    {config.fetch.max_retries}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("parse-file")
def parse_file(
    csv_file: str = typer.Argument(..., help="Path to a local CSV export."),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Print at most N rows.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (parser settings).",
    ),
) -> None:
    """Parse a local CSV file with the snapshot parser and print rows as JSON.

    Useful for checking how a downloaded export will appear in the snapshot
    without hitting the network.
    """
    from sheets_snapshot.ingestion.csv_parser import parse_csv

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(csv_file)
    if not path.exists():
        typer.echo(f"[ERROR] CSV file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        typer.echo(f"[ERROR] Cannot read {path}: {exc}", err=True)
        raise typer.Exit(code=1)

    rows = parse_csv(text, preserve_quoted_cr=config.parser.preserve_quoted_cr)
    shown = rows if limit is None else rows[:limit]
    typer.echo(json.dumps(shown, indent=2, ensure_ascii=False))
    typer.echo(f"[OK] {len(rows)} row(s) parsed from {path.name}.", err=True)


@app.command("show-snapshot")
def show_snapshot(
    snapshot_path: Optional[str] = typer.Argument(
        None, help="Snapshot file (default: output.path from config)."
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
) -> None:
    """Print metadata, age and per-source row counts of a written snapshot."""
    from pydantic import ValidationError

    from sheets_snapshot.config import SourceConfig
    from sheets_snapshot.reporting.formatters import format_run_summary, summarize_snapshot
    from sheets_snapshot.reporting.reader import load_snapshot, snapshot_age_hours

    config = _load_config_or_exit(config_path)
    path = Path(snapshot_path or config.output.path)

    try:
        snapshot = load_snapshot(path)
    except FileNotFoundError:
        typer.echo(f"[ERROR] No snapshot found at {path}. Run: sheets-snapshot run", err=True)
        raise typer.Exit(code=1)
    except (ValueError, ValidationError) as exc:
        typer.echo(f"[ERROR] {path} is not a valid snapshot: {exc}", err=True)
        raise typer.Exit(code=1)

    meta = snapshot.meta
    age = snapshot_age_hours(snapshot)
    typer.echo(f"Snapshot: {path}")
    typer.echo(f"  Generated at:     {meta.generated_at}")
    typer.echo(f"  Age:              {'unknown' if age is None else f'{age:.1f} h'}")
    typer.echo(f"  Sheet ID:         {meta.source_sheet_id}")
    typer.echo(f"  Reporting period: {meta.reporting_quarter}")
    typer.echo(f"  Schema version:   {meta.schema_version}")
    typer.echo("")

    # Tabs that are in the file but no longer configured are still listed.
    sources = list(config.sheets.sources)
    configured = {s.key for s in sources}
    sources += [
        SourceConfig(key=key, name=key, gid="-")
        for key in snapshot.sheets
        if key not in configured
    ]
    summaries = [s for s in summarize_snapshot(snapshot, sources) if s.key in snapshot.sheets]
    typer.echo(format_run_summary(summaries, path.stat().st_size))


@app.command("start-scheduler")
def start_scheduler(
    interval_minutes: Optional[int] = typer.Option(
        None,
        "--interval-minutes",
        help="Minutes between runs. Uses config scheduler.interval_minutes if omitted.",
    ),
    skip_initial: bool = typer.Option(
        False,
        "--skip-initial",
        help="Wait one interval before the first run.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file, forwarded to every run.",
    ),
) -> None:
    """Run ``sheets-snapshot run`` on a fixed interval until Ctrl-C."""
    from sheets_snapshot.scheduler import SchedulerDaemon

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        daemon = SchedulerDaemon(
            interval_minutes=interval_minutes or config.scheduler.interval_minutes,
            config_path=config_path,
            run_timeout_seconds=config.scheduler.run_timeout_seconds,
            skip_initial=skip_initial,
        )
    except (RuntimeError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    daemon.start()


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
