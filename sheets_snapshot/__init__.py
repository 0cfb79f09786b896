"""
sheets_snapshot — fetch published spreadsheet CSV exports and aggregate them
into one versioned JSON snapshot.
"""

__version__ = "0.1.0"
