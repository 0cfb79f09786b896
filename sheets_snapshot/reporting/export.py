"""
Snapshot artifact writer.

``write_snapshot()`` is the only place the run touches the output file. The
write is atomic: the JSON is serialized fully in memory, written to a temp
file in the destination directory, fsynced, and moved over the target with
``os.replace``. A failure at any step leaves the previous artifact (if any)
untouched and raises :class:`~sheets_snapshot.errors.PersistenceError`.

The artifact is fully replaced on every run — never merged with what was
on disk.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from sheets_snapshot.errors import PersistenceError
from sheets_snapshot.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: Snapshot, indent: Optional[int] = None) -> str:
    """Serialize a snapshot to JSON text.

    Compact separators are used when ``indent`` is ``None`` so the output
    matches what browsers fetch as ``report-data.json``. Non-ASCII cell text
    is written as-is (UTF-8), not ``\\u`` escaped.

    Raises:
        PersistenceError: If the snapshot cannot be serialized.
    """
    separators = (",", ":") if indent is None else None
    try:
        return json.dumps(
            snapshot.model_dump(mode="json"),
            indent=indent,
            separators=separators,
            ensure_ascii=False,
        )
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"Cannot serialize snapshot: {exc}") from exc


def write_snapshot(
    snapshot: Snapshot,
    path: Path,
    indent: Optional[int] = None,
) -> int:
    """Atomically write ``snapshot`` to ``path``.

    Args:
        snapshot: Complete snapshot to persist.
        path: Destination file; parent directories are created if missing.
        indent: JSON indent, or ``None`` for compact output.

    Returns:
        Number of bytes written.

    Raises:
        PersistenceError: If the directory cannot be created, the snapshot
            cannot be serialized, or the file cannot be written.
    """
    payload = serialize_snapshot(snapshot, indent=indent).encode("utf-8")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PersistenceError(
            f"Cannot create output directory {path.parent}: {exc}"
        ) from exc

    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600; the artifact is served to readers.
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"Cannot write snapshot to {path}: {exc}") from exc

    logger.debug("Snapshot written: %s | bytes=%d", path, len(payload))
    return len(payload)
