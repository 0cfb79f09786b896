"""
Run metadata — the per-run audit record.

``RunMetadata`` records what a pipeline stage did: when it started and
finished, how many rows it produced, and the config it ran with. It is the
only model in the package that is NOT frozen — ``status``,
``rows_processed``, ``error_message`` and ``finished_at`` are updated as the
stage executes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

VALID_PIPELINE_STAGES = frozenset({"build_snapshot"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Pipeline execution audit record.

    Attributes:
        run_slug: UUID string identifying this run.
        pipeline_stage: One of ``VALID_PIPELINE_STAGES``.
        status: ``started`` → ``success`` | ``failed``.
        rows_processed: Total rows emitted across all sources.
        sources_failed: Keys of sources that degraded to an empty table.
        error_message: Set when ``status == "failed"``.
        config_snapshot: Full ``AppConfig.model_dump()`` for reproducibility.
        started_at: UTC start time.
        finished_at: UTC finish time; ``None`` while running.
    """

    run_slug: str
    pipeline_stage: str
    status: str = "started"
    rows_processed: int = 0
    sources_failed: list[str] = []
    error_message: Optional[str] = None
    config_snapshot: dict[str, Any] = {}
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v

    @property
    def duration_seconds(self) -> Optional[float]:
        """Wall-clock run time, or ``None`` while the run is in progress."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
