"""
CSV parser for published spreadsheet exports.

Converts the raw text of one export into a list of sparse row dicts keyed by
header. The stdlib ``csv`` module is deliberately not used: sheet exports
are parsed with a small two-state scanner whose quirks are pinned down here
and in ``tests/test_ingestion/test_csv_parser.py``.

Two passes over the same quote rules:

  ``split_logical_lines(text)``
      Walks the whole text once, tracking quoted/unquoted state, and yields
      one logical line per record. A newline inside quotes is field content,
      not a record break. Quote characters are kept verbatim so the second
      pass can resolve them.

  ``tokenize_row(line)``
      Splits one logical line on unquoted commas. Quotes toggle quoted mode
      and are not emitted; ``""`` inside quotes is one literal ``"``.

Row shape::

    "name,stage,notes\\nAcme,Seed,\\n"   →   [{"name": "Acme", "stage": "Seed"}]

  - Headers and values are stripped of surrounding whitespace.
  - Empty values (and columns with an empty header) are omitted.
  - Rows with no populated cells are dropped.
  - Fewer than two non-blank logical lines → ``[]`` (never an error).

Carriage returns:
  ``\\r`` outside quotes is always dropped. ``\\r`` inside quotes is dropped
  too unless ``preserve_quoted_cr=True``.
"""

from __future__ import annotations

import logging
from typing import Iterator

logger = logging.getLogger(__name__)

QUOTE = '"'
DELIMITER = ","

Row = dict[str, str]


# ── Row tokenizer ──────────────────────────────────────────────────────────────

def tokenize_row(line: str) -> list[str]:
    """Split one logical CSV line into raw (unstripped) field strings.

    Args:
        line: A logical line as produced by :func:`split_logical_lines`.
            May contain newlines inside quoted regions.

    Returns:
        Field strings in column order. Always at least one element; an
        empty line yields ``[""]``.

    Example::

        tokenize_row('a,"b,c"')
        # → ["a", "b,c"]
        tokenize_row('x,"say ""hi"" now"')
        # → ["x", 'say "hi" now']
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    # End of line closes the last field even if a quote was left open.
    fields.append("".join(current))
    return fields


# ── Logical line splitting ─────────────────────────────────────────────────────

def split_logical_lines(
    text: str,
    preserve_quoted_cr: bool = False,
) -> Iterator[str]:
    """Yield the non-blank logical lines of ``text``.

    A doubled quote inside a quoted region toggles the state twice, which
    leaves it unchanged, so no lookahead is needed here.

    Args:
        text: Full CSV export text (``\\n`` or ``\\r\\n`` line endings).
        preserve_quoted_cr: Keep ``\\r`` characters that occur inside quotes.

    Yields:
        Logical lines with quote characters intact and blank lines skipped.
    """
    current: list[str] = []
    in_quotes = False

    for char in text:
        if char == QUOTE:
            in_quotes = not in_quotes
            current.append(char)
        elif char == "\n" and not in_quotes:
            line = "".join(current)
            if line.strip():
                yield line
            current = []
        elif char == "\r" and not (in_quotes and preserve_quoted_cr):
            continue
        else:
            current.append(char)

    line = "".join(current)
    if line.strip():
        yield line


# ── Parser ─────────────────────────────────────────────────────────────────────

def parse_csv(text: str, preserve_quoted_cr: bool = False) -> list[Row]:
    """Parse a CSV export into sparse row dicts keyed by header.

    Args:
        text: Full CSV export text. Empty or whitespace-only is fine.
        preserve_quoted_cr: Keep ``\\r`` inside quoted fields (default: drop).

    Returns:
        Rows in file order, header line excluded. Each row maps header →
        stripped, non-empty value, in header order.
    """
    lines = split_logical_lines(text, preserve_quoted_cr=preserve_quoted_cr)

    header_line = next(lines, None)
    if header_line is None:
        logger.debug("CSV text has no non-blank lines")
        return []

    headers = [h.strip() for h in tokenize_row(header_line)]

    rows: list[Row] = []
    data_lines = 0
    for line in lines:
        data_lines += 1
        row = _zip_row(headers, tokenize_row(line))
        if row:
            rows.append(row)

    if data_lines == 0:
        logger.debug("CSV text has a header line but no data lines")
    return rows


def _zip_row(headers: list[str], values: list[str]) -> Row:
    """Pair values with headers by position, keeping only populated cells.

    Values beyond the header count are ignored; missing trailing values are
    absent. A repeated header name keeps its first position but takes the
    later column's value when that value is non-empty.
    """
    row: Row = {}
    for header, raw in zip(headers, values):
        value = raw.strip()
        if header and value:
            row[header] = value
    return row
