"""
Snapshot artifact reader.

Loads a previously written ``report-data.json`` back into a validated
:class:`~sheets_snapshot.models.snapshot.Snapshot`. Row key order is
preserved (``json`` keeps object member order, and so does pydantic).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sheets_snapshot.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> Snapshot:
    """Load and validate a snapshot file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If the JSON does not match the schema.
    """
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return Snapshot.model_validate(raw)


def snapshot_age_hours(
    snapshot: Snapshot,
    now: Optional[datetime] = None,
) -> Optional[float]:
    """Hours elapsed since ``meta.generated_at``; ``None`` if unparseable."""
    try:
        generated = datetime.fromisoformat(
            snapshot.meta.generated_at.replace("Z", "+00:00")
        )
    except ValueError:
        logger.debug("Unparseable generated_at: %r", snapshot.meta.generated_at)
        return None
    now = now or datetime.now(timezone.utc)
    return (now - generated).total_seconds() / 3600.0
