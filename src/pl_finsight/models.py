# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data structures shared by the P/L pipeline.

- ``CategoryRecord``: one parsed data line of a P/L export.
- ``LeafNode`` / ``InternalNode``: the two node variants of a category
  tree. ``CategoryNode`` is their union; code that walks a tree dispatches
  on the variant with ``isinstance``.

All structures are frozen. Stages that need a different value (the ratio
recalculation, for instance) build new instances and never modify the
ones they received.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .values import MonthlyValues


@dataclass(frozen=True)
class CategoryRecord:
    """One data line of a P/L export.

    Attributes:
        period: Reporting period identifier (e.g. "2026").
        entity: Business unit / brand identifier (e.g. "Total").
        major_category: Top-level category (never empty once loaded).
        mid_category: Second-level category.
        minor_category: Optional third-level category, None when absent.
        monthly_values: Amount per month (1..12).
        is_ratio_row: True when the month cells were percentages.
    """

    period: str
    entity: str
    major_category: str
    mid_category: str
    minor_category: Optional[str]
    monthly_values: MonthlyValues
    is_ratio_row: bool


@dataclass(frozen=True)
class LeafNode:
    """Tree node carrying the records of its category."""

    key: str
    label: str
    depth: int
    path: tuple[str, ...]
    monthly_rollup: MonthlyValues
    has_ratio_row: bool
    records: tuple[CategoryRecord, ...]


@dataclass(frozen=True)
class InternalNode:
    """Tree node grouping child nodes of the next depth."""

    key: str
    label: str
    depth: int
    path: tuple[str, ...]
    monthly_rollup: MonthlyValues
    has_ratio_row: bool
    children: tuple["CategoryNode", ...]


CategoryNode = Union[LeafNode, InternalNode]


def node_key(*path: str) -> str:
    """Build the identity key of the node reached by ``path``.

    The key is the level tag followed by the category labels from the root,
    e.g. ``node_key("TAG매출", "A")`` → ``"L2|TAG매출|A"``. Two trees built
    independently produce the same key for the same category path.
    """
    return "|".join([f"L{len(path)}", *path])
