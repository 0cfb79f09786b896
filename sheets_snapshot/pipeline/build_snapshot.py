"""
SnapshotStage — fetch every configured tab, parse it, and write one
aggregate JSON snapshot.

Flow::

    for source in config.sheets.sources:        # in configured order
        text  = client.fetch_csv(source)         # FetchError → []
        rows  = parse_csv(text)                  # any exception → []
    snapshot = assemble_snapshot(results, ...)   # metadata from wall clock
    write_snapshot(snapshot, output.path)        # atomic; PersistenceError is fatal

Failure isolation:
  A source that cannot be fetched or parsed contributes an empty table under
  its key and the run carries on. Only configuration and persistence errors
  abort the run. A header-only or blank export is not a failure — it simply
  yields an empty table.

Accumulation:
  Each source produces an immutable :class:`SourceResult`; the ``sheets``
  mapping is built from the finished results in one step rather than filled
  in as a side effect of the loop.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from sheets_snapshot.config import AppConfig, SourceConfig
from sheets_snapshot.errors import ConfigError, FetchError
from sheets_snapshot.ingestion.csv_parser import Row, parse_csv
from sheets_snapshot.ingestion.sheets_client import SheetsClient
from sheets_snapshot.models.meta import RunMetadata
from sheets_snapshot.models.snapshot import Snapshot, SnapshotMeta
from sheets_snapshot.pipeline.base import PipelineStage
from sheets_snapshot.reporting.export import write_snapshot
from sheets_snapshot.utils.time_utils import (
    isoformat_utc,
    reporting_period,
    to_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

FetchFn = Callable[[SourceConfig], str]
ParseFn = Callable[[str], list[Row]]


@dataclass(frozen=True)
class SourceResult:
    """Outcome of fetching and parsing one source."""

    key: str
    rows: list[Row] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


# ── Pure building blocks ───────────────────────────────────────────────────────

def collect_source(source: SourceConfig, fetch: FetchFn, parse: ParseFn) -> SourceResult:
    """Fetch and parse one source, converting any failure into an empty result."""
    logger.info("Fetching %s...", source.name)
    try:
        text = fetch(source)
    except FetchError as exc:
        logger.warning("Failed to fetch %s: %s", source.name, exc)
        return SourceResult(key=source.key, error=str(exc))

    try:
        rows = parse(text)
    except Exception as exc:
        logger.error("Failed to parse %s: %s", source.name, exc, exc_info=True)
        return SourceResult(key=source.key, error=f"parse error: {exc}")

    if rows:
        logger.info("[%s] Columns: %s", source.name, ", ".join(rows[0].keys()))
    logger.info("[%s] %d rows", source.name, len(rows))
    return SourceResult(key=source.key, rows=rows)


def collect_sources(
    sources: list[SourceConfig],
    fetch: FetchFn,
    parse: ParseFn = parse_csv,
) -> list[SourceResult]:
    """Process ``sources`` sequentially, in order, one result per source."""
    return [collect_source(source, fetch, parse) for source in sources]


def build_meta(sheet_id: str, now: datetime) -> SnapshotMeta:
    """Compute generation metadata for a snapshot finished at ``now``.

    Timestamp and reporting quarter are both taken in UTC.
    """
    now = to_utc(now)
    period = reporting_period(now)
    return SnapshotMeta(
        generated_at=isoformat_utc(now),
        source_sheet_id=sheet_id,
        reporting_quarter=period.label,
        reporting_year=period.year,
        reporting_quarter_number=period.quarter,
    )


def assemble_snapshot(
    results: list[SourceResult],
    sheet_id: str,
    now: Optional[datetime] = None,
) -> Snapshot:
    """Merge per-source results into a :class:`Snapshot`.

    ``now`` defaults to the current UTC time and is read only after every
    source has been processed.
    """
    sheets = {result.key: list(result.rows) for result in results}
    return Snapshot(meta=build_meta(sheet_id, now or utcnow()), sheets=sheets)


def build_snapshot(
    sources: list[SourceConfig],
    fetch: FetchFn,
    sheet_id: str,
    now: Optional[datetime] = None,
    parse: ParseFn = parse_csv,
) -> Snapshot:
    """Fetch, parse and assemble a snapshot without writing it anywhere."""
    return assemble_snapshot(collect_sources(sources, fetch, parse), sheet_id, now)


# ── Stage ──────────────────────────────────────────────────────────────────────

class SnapshotStage(PipelineStage):
    """Build ``report-data.json`` from every configured sheet tab.

    Returns the total number of rows written across all sources. After a
    successful ``run()`` the built ``snapshot``, the ``output_path`` and
    ``bytes_written`` are available on the instance for reporting.
    """

    stage_name = "build_snapshot"

    def __init__(
        self,
        config: AppConfig,
        client: Optional[SheetsClient] = None,
    ) -> None:
        super().__init__(config)
        self._client = client
        self.snapshot: Optional[Snapshot] = None
        self.output_path: Optional[Path] = None
        self.bytes_written = 0

    def _execute(
        self,
        run: RunMetadata,
        output_path: Optional[Path] = None,
        now: Optional[datetime] = None,
        **kwargs,
    ) -> int:
        """Fetch and parse all sources, then write the snapshot atomically.

        Args:
            run: In-progress :class:`RunMetadata` (mutable).
            output_path: Override for ``config.output.path``.
            now: Fixed completion time (tests); defaults to the wall clock.

        Returns:
            Total rows across all source tables.

        Raises:
            ConfigError: If no sheet id or no sources are configured.
            PersistenceError: If the artifact cannot be written.
        """
        sheets_cfg = self.config.sheets
        if not sheets_cfg.sheet_id:
            raise ConfigError("sheets.sheet_id is not configured.")
        if not sheets_cfg.sources:
            raise ConfigError("sheets.sources is empty; nothing to export.")

        logger.info(
            "Building snapshot | sheet_id=%s | sources=%d",
            sheets_cfg.sheet_id, len(sheets_cfg.sources),
        )

        parse = functools.partial(
            parse_csv, preserve_quoted_cr=self.config.parser.preserve_quoted_cr
        )

        if self._client is not None:
            results = collect_sources(sheets_cfg.sources, self._client.fetch_csv, parse)
        else:
            with SheetsClient(sheets_cfg.sheet_id, self.config.fetch) as client:
                results = collect_sources(sheets_cfg.sources, client.fetch_csv, parse)

        snapshot = assemble_snapshot(results, sheets_cfg.sheet_id, now)
        run.sources_failed = [r.key for r in results if r.failed]

        path = Path(output_path or self.config.output.path)
        self.bytes_written = write_snapshot(snapshot, path, indent=self.config.output.indent)
        self.snapshot = snapshot
        self.output_path = path

        logger.info(
            "Snapshot written to %s | %d bytes | reporting_quarter=%s",
            path, self.bytes_written, snapshot.meta.reporting_quarter,
        )
        return snapshot.total_rows
