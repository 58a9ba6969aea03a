# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
PL FinSight
-----------

The computation core of a Profit & Loss reporting dashboard. It turns the
semi-structured CSV exports of a P/L (one file per period and entity) into
category trees ready to be compared period over period.

Main capabilities:
- lenient cell parsing (thousands separators, parentheses for negatives,
  percentages, dashes and blanks),
- CSV loading with month-column detection in any order and quote-aware
  comma/tab splitting,
- a two- or three-level category tree with monthly rollups that exclude
  ratio lines,
- recalculation of the cost ratio rows from the cost and sales subtrees,
- month, year-to-date and full-year comparison figures,
- JSON serialisation and a pandas comparison table for the presentation
  layer.

PL FinSight separates computation (values, io, tree, rate_recalc, calc),
configuration (TOML) and presentation (views, CLI).


Version: 0.1.0

Usage:
    python -m pl_finsight.cli --help
"""

__all__ = ["values", "io", "tree", "rate_recalc", "calc", "views", "pipeline"]

__version__ = "0.1.0"
