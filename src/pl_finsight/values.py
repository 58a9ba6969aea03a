# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cell value helpers for PL FinSight.

P/L exports are maintained by hand in spreadsheets and exported as CSV.
Cells therefore carry a number of presentation artifacts that must be
removed before a value can be used in a computation:

- byte-order marks and non-breaking spaces,
- thousands separators ("18,689"),
- parentheses for negative amounts ("(2,344)"),
- percent signs on ratio lines ("33.00%"),
- dashes or blanks for "nothing".

Every helper in this module is lenient: an unparseable cell is read as 0.0
and never raises.

Monthly values
--------------
A ``MonthlyValues`` mapping holds one amount per calendar month, keyed by
the month number (1..12). Helpers in this package always produce all 12
keys; readers must still treat a missing key as 0.
"""

import math
import re
from collections.abc import Iterable, Mapping

MonthlyValues = dict[int, float]

MONTHS: tuple[int, ...] = tuple(range(1, 13))

_BOM = "\ufeff"
_WHITESPACE_RE = re.compile(r"\s+")


def empty_months() -> MonthlyValues:
    """Return a new MonthlyValues mapping with all 12 months set to 0.0."""
    return {m: 0.0 for m in MONTHS}


def month_value(monthly: Mapping[int, float], month: int) -> float:
    """Return the value stored for ``month``, 0.0 when absent."""
    return float(monthly.get(month, 0.0) or 0.0)


def add_months(total: MonthlyValues, other: Mapping[int, float]) -> None:
    """Add ``other`` into ``total`` in place, month by month."""
    for m in MONTHS:
        total[m] += month_value(other, m)


def normalize_cell(raw: object) -> str:
    """Normalize a raw CSV cell or header.

    Strips a leading byte-order mark, turns non-breaking spaces into regular
    spaces, collapses whitespace runs to a single space and trims.
    """
    if raw is None:
        return ""
    text = str(raw)
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    text = text.replace("\u00a0", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def _to_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        return 0.0
    # "nan" and "inf" are valid float literals but never valid amounts.
    if not math.isfinite(value):
        return 0.0
    return value


def parse_value(raw: object) -> float:
    """Parse a P/L cell into a number.

    Rules:
        - "" or "-"        → 0.0
        - "(2,344)"        → -2344.0
        - "18,689"         → 18689.0
        - "33.00%"         → 33.0 (percent magnitude, not divided by 100)
        - anything else    → 0.0

    Args:
        raw: Raw cell content (any object, usually a string).

    Returns:
        The parsed value as a float. This function never raises.
    """
    text = normalize_cell(raw)
    if text == "" or text == "-":
        return 0.0

    if len(text) >= 2 and text.startswith("(") and text.endswith(")"):
        inner = parse_value(text[1:-1])
        return -inner if inner else 0.0

    if "%" in text:
        return _to_float(text.replace("%", "").replace(",", "").strip())

    return _to_float(text.replace(",", ""))


def is_percentage_row(cells: Iterable[object]) -> bool:
    """Return True if at least one non-empty cell contains a '%' sign."""
    for cell in cells:
        text = normalize_cell(cell)
        if text and "%" in text:
            return True
    return False
