"""
Exception hierarchy for the snapshot builder.

Only ``PersistenceError`` is fatal to a run. ``FetchError`` is raised by the
sheets client and recovered per source by the snapshot builder.
"""

from __future__ import annotations

from typing import Optional


class SnapshotError(Exception):
    """Base exception for all sheets-snapshot failures."""


class ConfigError(SnapshotError):
    """Raised for invalid runtime configuration."""


class FetchError(SnapshotError):
    """Raised when a source export cannot be retrieved.

    Attributes:
        source_key: Key of the source that failed.
        url: Export URL that was requested.
        status_code: HTTP status of the final attempt, or ``None`` for
            transport-level failures (DNS, connect, timeout).
    """

    def __init__(
        self,
        message: str,
        source_key: str = "",
        url: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.source_key = source_key
        self.url = url
        self.status_code = status_code


class PersistenceError(SnapshotError):
    """Raised when the snapshot artifact cannot be serialized or written."""
