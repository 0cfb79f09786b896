"""
sheets_snapshot.reporting — snapshot artifact I/O and run summaries.

Modules:
  export     — Atomic JSON writer for ``report-data.json``.
  reader     — Loader / validator for a written snapshot.
  formatters — Plain-text per-source summary for the CLI.
"""
