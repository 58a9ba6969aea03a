# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for PL FinSight.

This module turns the text of one P/L export (one period, one entity) into
a flat list of ``CategoryRecord`` objects.

Expected input format
---------------------
The first non-empty line is the header. Fields are separated by commas or
tabs; double-quoted spans are literal (a comma inside quotes is part of
the value). The header must contain:

    - a major category column (header containing ``대분류``),
    - a mid category column (header containing ``중분류``),
    - optionally a minor category column (header containing ``소분류``),
    - one or more month columns such as ``26년1월`` or ``2026년 12월``.

Month columns may appear in any order. Any other column is ignored.

The text is tokenized with ``pandas.read_csv`` (see ``read_rows``). Rows
end at a line break only; other Unicode separators such as a form feed
stay inside their cell, where ``normalize_cell`` turns them into a space.

Example::

    대분류,중분류,소분류,26년1월,26년2월
    TAG매출,A,,"1,000","2,000"
    매출원가,A,,"(300)","(400)"

Output
------
One ``CategoryRecord`` per retained data line, in input order, with 12
monthly values (missing months are 0.0) and an ``is_ratio_row`` flag set
when one of the month cells is a percentage.

Malformed sources (empty, header only, no month column, no category
columns) raise ``LoadError``.
"""

import logging
import os
import re
from io import StringIO
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import ColumnsConfig
from .models import CategoryRecord
from .values import empty_months, is_percentage_row, normalize_cell, parse_value

logger = logging.getLogger(__name__)


class LoadError(ValueError):
    """Raised when a P/L export cannot be interpreted."""


def read_rows(source_text: str, delimiter: str = ",") -> list[list[str]]:
    """Split the text of an export into rows of raw cells.

    The text is read with ``pandas.read_csv``: double-quoted spans are
    literal (``'A,"1,000",x'`` gives ``["A", "1,000", "x"]``), blank lines
    are skipped and every cell is kept as a string. Each row holds only
    the fields present on its line, so a short line gives a short row.

    Raises:
        LoadError: if pandas cannot tokenize the text.
    """
    physical_lines = source_text.split("\n")
    width = max(line.count(delimiter) for line in physical_lines) + 1

    try:
        df = pd.read_csv(
            StringIO(source_text),
            sep=delimiter,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise LoadError(f"Could not tokenize P/L source: {exc}") from exc

    # Fields missing at the end of a short line are the only NaN cells.
    return [
        [value for value in values if isinstance(value, str)]
        for values in df.itertuples(index=False, name=None)
    ]


def detect_delimiter(header_line: str) -> str:
    """Return a tab if the header has one outside quotes, else a comma."""
    unquoted = re.sub(r'"[^"]*"', "", header_line)
    return "\t" if "\t" in unquoted else ","


def _month_header_re(columns: ColumnsConfig) -> "re.Pattern[str]":
    return re.compile(
        r"(?:\d{4}|\d{2})"
        + re.escape(columns.year_marker)
        + r"\s?(\d{1,2})"
        + re.escape(columns.month_marker)
    )


def extract_month_number(
    header: str, columns: Optional[ColumnsConfig] = None
) -> Optional[int]:
    """Return the month number of a month header, or None.

    Examples (default markers):
        "26년1월"     → 1
        "2025년 12월" → 12
        "26년13월"    → None (out of range)
        "중분류"      → None
    """
    columns = columns or ColumnsConfig()
    match = _month_header_re(columns).search(normalize_cell(header))
    if not match:
        return None
    month = int(match.group(1))
    if 1 <= month <= 12:
        return month
    return None


def _find_column(headers: list[str], marker: str) -> int:
    """Index of the first header equal to or containing ``marker``, else -1."""
    for idx, header in enumerate(headers):
        if header == marker or marker in header:
            return idx
    return -1


def _cell(cells: list[str], idx: int) -> str:
    if 0 <= idx < len(cells):
        return cells[idx]
    return ""


def load_records(
    source_text: str,
    period: str,
    entity: str,
    columns: Optional[ColumnsConfig] = None,
    source_name: Optional[str] = None,
) -> list[CategoryRecord]:
    """Parse the text of a P/L export into category records.

    Args:
        source_text: Decoded content of the export.
        period: Reporting period stamped on every record.
        entity: Business unit / brand stamped on every record.
        columns: Header markers and row tolerance (defaults when None).
        source_name: Name used in error messages (file name, usually).

    Returns:
        The retained records, in input line order.

    Raises:
        LoadError: if the source is empty or header-only, has no month
            column, or lacks the major or mid category column.
    """
    columns = columns or ColumnsConfig()
    name = source_name or f"{period} {entity}"

    header_line = next(
        (line for line in source_text.split("\n") if line.strip()), ""
    )
    if not header_line:
        raise LoadError(f"P/L source is empty or only has a header: {name}")

    delimiter = detect_delimiter(header_line)
    try:
        raw_rows = read_rows(source_text, delimiter)
    except LoadError as exc:
        raise LoadError(f"{exc} ({name})") from exc

    # Cells are trimmed one by one; a line-level trim would shift leading
    # empty tab fields.
    rows = [
        cells
        for cells in ([normalize_cell(c) for c in raw] for raw in raw_rows)
        if any(cells)
    ]
    if len(rows) < 2:
        raise LoadError(f"P/L source is empty or only has a header: {name}")

    headers = rows[0]

    # Month number -> column index. A later duplicate wins.
    month_columns: dict[int, int] = {}
    for idx, header in enumerate(headers):
        month = extract_month_number(header, columns)
        if month is not None:
            month_columns[month] = idx

    if not month_columns:
        raise LoadError(f"No month column found in P/L source: {name}")

    major_idx = _find_column(headers, columns.major_marker)
    mid_idx = _find_column(headers, columns.mid_marker)
    minor_idx = _find_column(headers, columns.minor_marker)

    if major_idx == -1 or mid_idx == -1:
        raise LoadError(
            f"Major or mid category column not found in P/L source: {name}"
        )

    records: list[CategoryRecord] = []
    skipped_short = 0

    for cells in rows[1:]:
        if len(cells) < len(headers) - columns.row_tolerance:
            skipped_short += 1
            continue

        major = _cell(cells, major_idx)
        mid = _cell(cells, mid_idx)
        if not major and not mid:
            continue

        minor: Optional[str] = None
        if minor_idx != -1:
            minor = _cell(cells, minor_idx) or None

        month_cells = [_cell(cells, idx) for idx in month_columns.values()]
        monthly = empty_months()
        for month, idx in month_columns.items():
            monthly[month] = parse_value(_cell(cells, idx))

        records.append(
            CategoryRecord(
                period=period,
                entity=entity,
                major_category=major,
                mid_category=mid,
                minor_category=minor,
                monthly_values=monthly,
                is_ratio_row=is_percentage_row(month_cells),
            )
        )

    if skipped_short:
        logger.debug("%s: skipped %d incomplete line(s)", name, skipped_short)
    logger.debug("%s: loaded %d record(s)", name, len(records))

    return records


def read_source_text(
    path: Union[str, "os.PathLike[str]"],
    encodings: tuple[str, ...] = ("utf-8", "cp949"),
) -> str:
    """Read a P/L export, trying each encoding in order.

    Raises:
        FileNotFoundError: if the file does not exist.
        LoadError: if none of the encodings can decode the file.
    """
    data = Path(path).read_bytes()
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("%s: could not decode as %s", path, encoding)
            continue
    raise LoadError(
        f"Could not decode P/L source {path} with any of: {', '.join(encodings)}"
    )
