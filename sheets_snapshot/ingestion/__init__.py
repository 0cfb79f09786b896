"""
Ingestion layer — sheet export client and CSV parsing.

Submodules:
  sheets_client — HTTP fetch of one published sheet tab as CSV text
  csv_parser    — quote-aware CSV → sparse row dicts

Configuration (config/default.toml [sheets] / [fetch], or env):
  SHEETS_SNAPSHOT_SHEET_ID   — spreadsheet identifier override
  SHEETS_SNAPSHOT_TIMEOUT    — per-request timeout in seconds
"""
