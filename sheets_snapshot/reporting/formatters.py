"""
Plain-text formatters for CLI run summaries.

All formatters return multi-line strings suitable for ``typer.echo()``.
No third-party dependencies (no ``rich``, no ``colorama``).

Sizes are measured on the compact JSON encoding of each source table, so
they approximate each tab's share of the artifact that consumers download.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from sheets_snapshot.config import SourceConfig
from sheets_snapshot.models.snapshot import Snapshot


@dataclass(frozen=True)
class SourceSummary:
    """Row count and encoded size of one source table."""

    key: str
    name: str
    row_count: int
    size_bytes: int


def summarize_snapshot(
    snapshot: Snapshot,
    sources: list[SourceConfig],
) -> list[SourceSummary]:
    """Return one summary per configured source, in configured order.

    Sources missing from the snapshot are reported with zero rows.
    """
    summaries: list[SourceSummary] = []
    for source in sources:
        rows = snapshot.sheets.get(source.key, [])
        size = len(json.dumps(rows, separators=(",", ":"), ensure_ascii=False))
        summaries.append(
            SourceSummary(
                key=source.key,
                name=source.name,
                row_count=len(rows),
                size_bytes=size,
            )
        )
    return summaries


def format_run_summary(
    summaries: list[SourceSummary],
    total_bytes: int,
    failed_keys: list[str] | None = None,
) -> str:
    """Render the end-of-run summary block.

    Example::

          output: 412 rows, 96.3 KB
          Mafia: 0 rows, 0.0 KB  [FAILED]
          Total size: 1.27 MB
    """
    failed = set(failed_keys or [])
    lines: list[str] = []
    for s in summaries:
        flag = "  [FAILED]" if s.key in failed else ""
        lines.append(f"  {s.name}: {s.row_count} rows, {s.size_bytes / 1024:.1f} KB{flag}")
    lines.append(f"  Total size: {total_bytes / 1024 / 1024:.2f} MB")
    return "\n".join(lines)
