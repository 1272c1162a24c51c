#!/usr/bin/env python3
"""
CSV / TSV codec shared by the locations, events and routes modules.

Parsing goes through the standard csv reader; the delimiter is either
forced by the caller or detected from the header line. Serialization
quotes a field only when it has to.
"""

import csv
import io
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

_NEEDS_QUOTING = re.compile(r'[",\n]')


class CsvFormatError(ValueError):
    """Raised when delimited text cannot be turned into a usable table"""


def detect_delimiter(text: str) -> str:
    """
    Pick tab or comma by counting both in the first line only.

    Tab wins only when it is strictly more frequent; ties (including no
    delimiter at all) fall back to comma.
    """
    first_line = text.split('\n', 1)[0]
    tab_count = first_line.count('\t')
    comma_count = first_line.count(',')
    return '\t' if tab_count > comma_count else ','


def parse_csv(text: str, delimiter: Optional[str] = None) -> List[List[str]]:
    """
    Parse delimited text into a list of rows of trimmed strings.

    Args:
        text: Raw file content
        delimiter: ',' or '\\t'; auto-detected from the header line when omitted

    Returns:
        Rows in file order. Row 0 is the header. Rows whose cells are all
        blank are dropped.

    Raises:
        CsvFormatError: On an unterminated quoted field or other damage the
            reader refuses to recover from.
    """
    if not text:
        return []

    if text.startswith('\ufeff'):
        text = text[1:]

    delim = delimiter or detect_delimiter(text)
    reader = csv.reader(io.StringIO(text, newline=''), delimiter=delim, quotechar='"',
                        doublequote=True, strict=True)

    rows = []
    try:
        for raw_row in reader:
            row = [cell.strip() for cell in raw_row]
            if any(row):
                rows.append(row)
    except csv.Error as e:
        raise CsvFormatError(f'Malformed CSV near line {reader.line_num}: {e}') from e

    logger.debug(f"Parsed {len(rows)} rows with delimiter {delim!r}")
    return rows


def require_data_rows(grid: Sequence[Sequence[str]]) -> None:
    """Importers need a header and at least one data row"""
    if len(grid) < 2:
        raise CsvFormatError('CSV/TSV must include a header and at least one row')


def _escape_field(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        text = 'true' if value else 'false'
    elif isinstance(value, (list, tuple)):
        text = ', '.join(str(item) for item in value)
    else:
        text = str(value)
    if _NEEDS_QUOTING.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(rows: Iterable[Mapping[str, Any]], headers: Sequence[str]) -> str:
    """
    Serialize records to comma-delimited text.

    One header line, then one line per record with fields taken in header
    order. Missing and None fields serialize as empty strings; lists are
    joined with ", ".
    """
    lines = [','.join(headers)]
    for row in rows:
        lines.append(','.join(_escape_field(row.get(header)) for header in headers))
    return '\n'.join(lines)


def grid_to_records(grid: Sequence[Sequence[str]], aliases: Optional[Dict[str, str]] = None) -> List[Dict[str, str]]:
    """
    Turn a parsed grid into dicts keyed by (lowercased, aliased) header names.

    Short rows are padded with empty strings; extra cells are ignored.
    """
    if not grid:
        return []

    aliases = aliases or {}
    headers = []
    for header in grid[0]:
        key = header.strip().lower()
        headers.append(aliases.get(key, key))

    records = []
    for cells in grid[1:]:
        record = {}
        for index, header in enumerate(headers):
            value = cells[index] if index < len(cells) else ''
            # First occurrence wins when two columns alias to the same field
            if header not in record or not record[header]:
                record[header] = value.strip()
        records.append(record)
    return records


def validate_csv_headers(actual_headers: Sequence[str], expected_headers: Sequence[str]) -> List[str]:
    """Report required columns missing from the header row"""
    actual = {header.strip().lower() for header in actual_headers}
    missing = [header for header in expected_headers if header not in actual]
    if missing:
        return [f"Missing required columns: {', '.join(missing)}"]
    return []
