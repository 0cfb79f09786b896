"""
Snapshot artifact models — the shape of ``report-data.json``.

Top-level layout::

    {
      "meta": {
        "generated_at": "2026-10-17T08:00:00.000Z",
        "source_sheet_id": "1_DZZ...",
        "reporting_quarter": "2026Q4",
        "reporting_year": 2026,
        "reporting_quarter_number": 4,
        "schema_version": "2.0"
      },
      "sheets": {"output": [{"Company": "Acme", ...}, ...], ...},
      "config": {"schema_version": "1.0"}
    }

``sheets`` values are lists of sparse row dicts: keys are a subset of that
tab's headers, values are non-empty stripped strings. Key order within each
row is preserved through serialization.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

META_SCHEMA_VERSION = "2.0"
CONFIG_SCHEMA_VERSION = "1.0"

_QUARTER_RE = re.compile(r"^\d{4}Q[1-4]$")


class SnapshotMeta(BaseModel):
    """Generation metadata, computed once after all sources are processed."""

    model_config = ConfigDict(frozen=True)

    generated_at: str
    source_sheet_id: str
    reporting_quarter: str
    reporting_year: int
    reporting_quarter_number: int
    schema_version: Literal["2.0"] = META_SCHEMA_VERSION

    @field_validator("reporting_quarter")
    @classmethod
    def validate_quarter_label(cls, v: str) -> str:
        if not _QUARTER_RE.match(v):
            raise ValueError(f"reporting_quarter must look like '2026Q4', got '{v}'.")
        return v

    @field_validator("reporting_quarter_number")
    @classmethod
    def validate_quarter_number(cls, v: int) -> int:
        if v not in (1, 2, 3, 4):
            raise ValueError(f"reporting_quarter_number must be 1–4, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_label_matches_parts(self) -> "SnapshotMeta":
        expected = f"{self.reporting_year}Q{self.reporting_quarter_number}"
        if self.reporting_quarter != expected:
            raise ValueError(
                f"reporting_quarter '{self.reporting_quarter}' does not match "
                f"year/quarter ({expected})."
            )
        return self


class SnapshotConfigBlock(BaseModel):
    """Consumer-facing config section; currently only a schema tag."""

    model_config = ConfigDict(frozen=True)

    schema_version: Literal["1.0"] = CONFIG_SCHEMA_VERSION


class Snapshot(BaseModel):
    """The complete aggregate artifact written once per run."""

    model_config = ConfigDict(frozen=True)

    meta: SnapshotMeta
    sheets: dict[str, list[dict[str, str]]]
    config: SnapshotConfigBlock = SnapshotConfigBlock()

    @property
    def total_rows(self) -> int:
        """Row count summed over every source table."""
        return sum(len(rows) for rows in self.sheets.values())
