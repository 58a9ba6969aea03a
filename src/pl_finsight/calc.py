# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Column calculations for the P/L comparison table.

For a reference month, each displayed row shows six figures:

    prior_month,      curr_month        value of the reference month
    prior_ytd,        curr_ytd          sum of months 1..reference month
    prior_year_total, curr_year_total   sum of the 12 months

Amount rows use ``calc_cols()``. Ratio rows are not additive: either only
the month figures are shown (``calc_cols(..., is_ratio_row=True)``), or the
ratio is rebuilt for every range from a numerator and a denominator
(``calc_rate_cols_from_numer_denom()``).
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from .values import month_value


@dataclass(frozen=True)
class ColumnFigures:
    """The six comparison figures of one displayed row."""

    prior_month: Optional[float]
    curr_month: Optional[float]
    prior_ytd: Optional[float]
    curr_ytd: Optional[float]
    prior_year_total: Optional[float]
    curr_year_total: Optional[float]


_EMPTY = ColumnFigures(None, None, None, None, None, None)
_ZERO = ColumnFigures(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


def _in_range(month: int) -> bool:
    return 1 <= month <= 12


def sum_months(monthly: Mapping[int, float], end_month: Optional[int] = None) -> float:
    """Sum months 1..``end_month`` (inclusive), all 12 when None.

    An explicit ``end_month`` outside 1..12 gives 0.0.
    """
    end = 12 if end_month is None else end_month
    if not _in_range(end):
        return 0.0
    return sum(month_value(monthly, m) for m in range(1, end + 1))


def get_month_value(monthly: Mapping[int, float], month: int) -> float:
    """Value of ``month``, 0.0 when absent or out of range."""
    if not _in_range(month):
        return 0.0
    return month_value(monthly, month)


def calc_cols(
    month: int,
    prior: Mapping[int, float],
    current: Mapping[int, float],
    is_ratio_row: bool,
) -> ColumnFigures:
    """Compute the comparison figures of an amount or ratio row.

    - ``month`` outside 1..12: every figure is None.
    - ratio rows: only the month figures are set.
    - amount rows: month, year-to-date and full-year figures.
    """
    if not _in_range(month):
        return _EMPTY

    prior_month = get_month_value(prior, month)
    curr_month = get_month_value(current, month)

    if is_ratio_row:
        return ColumnFigures(prior_month, curr_month, None, None, None, None)

    return ColumnFigures(
        prior_month=prior_month,
        curr_month=curr_month,
        prior_ytd=sum_months(prior, month),
        curr_ytd=sum_months(current, month),
        prior_year_total=sum_months(prior, 12),
        curr_year_total=sum_months(current, 12),
    )


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    value = numerator / denominator * 100
    return value if math.isfinite(value) else 0.0


def calc_rate_cols_from_numer_denom(
    month: int,
    prior_numer: Mapping[int, float],
    prior_denom: Mapping[int, float],
    curr_numer: Mapping[int, float],
    curr_denom: Mapping[int, float],
) -> ColumnFigures:
    """Compute ratio figures (in %) from numerator and denominator months.

    Numerator and denominator are summed over each range (month, months
    1..month, all 12 months) before dividing, so the year-to-date ratio is
    sum(numerator) / sum(denominator), not an average of monthly ratios.
    Every figure is a number; a zero denominator gives 0.0.
    """
    if not _in_range(month):
        return _ZERO

    return ColumnFigures(
        prior_month=_ratio(
            get_month_value(prior_numer, month), get_month_value(prior_denom, month)
        ),
        curr_month=_ratio(
            get_month_value(curr_numer, month), get_month_value(curr_denom, month)
        ),
        prior_ytd=_ratio(
            sum_months(prior_numer, month), sum_months(prior_denom, month)
        ),
        curr_ytd=_ratio(sum_months(curr_numer, month), sum_months(curr_denom, month)),
        prior_year_total=_ratio(sum_months(prior_numer), sum_months(prior_denom)),
        curr_year_total=_ratio(sum_months(curr_numer), sum_months(curr_denom)),
    )
