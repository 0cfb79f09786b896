"""
Domain models — the snapshot artifact and per-run audit record.

Modules:
  snapshot — ``Snapshot``, ``SnapshotMeta``, ``SnapshotConfigBlock``
  meta     — ``RunMetadata``
"""
