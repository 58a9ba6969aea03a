# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Recalculation of ratio rows for PL FinSight.

The ratio lines of a P/L export (e.g. "Tag대비 원가율", cost of goods sold
relative to TAG sales) are typed in by hand and cannot be trusted once the
underlying amounts have been corrected. ``recalculate_ratios()`` recomputes
them from the trees themselves:

    ratio[month] = numerator[month] / denominator[month] * 100

where numerator and denominator are the rollups of the depth-2 leaf with
the same label as the ratio leaf, found under the numerator and
denominator major categories. A mid category that has minor categories
below it (an internal node) is never a match. A month with a zero
denominator gets 0.0.

Each tree is recalculated from its own rollups: prior-period ratios come
from prior-period amounts, current-period ratios from current-period
amounts.

The input trees are never modified. The returned trees are new values
that share every subtree the recalculation did not touch.

Recalculation is skipped, without error, for a tree that lacks one of the
three major categories, and for a ratio leaf whose label has no leaf
match under the numerator or denominator.
"""

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from typing import Optional

from .config import RatioConfig
from .models import CategoryNode, CategoryRecord, InternalNode, LeafNode
from .tree import find_mid_leaf, find_top_level
from .values import MONTHS, MonthlyValues, month_value

logger = logging.getLogger(__name__)


def ratio_months(
    numerator: Mapping[int, float], denominator: Mapping[int, float]
) -> MonthlyValues:
    """Return ``numerator / denominator * 100`` month by month (0 if d == 0)."""
    result: MonthlyValues = {}
    for m in MONTHS:
        numer = month_value(numerator, m)
        denom = month_value(denominator, m)
        result[m] = 0.0 if denom == 0 else numer / denom * 100
    return result


def _recalc_leaf(
    leaf: LeafNode,
    numerator_root: CategoryNode,
    denominator_root: CategoryNode,
    ratio_config: RatioConfig,
) -> LeafNode:
    numer_node = find_mid_leaf(numerator_root, leaf.label)
    denom_node = find_mid_leaf(denominator_root, leaf.label)
    if numer_node is None or denom_node is None:
        logger.debug("No numerator/denominator match for ratio leaf %s", leaf.key)
        return leaf

    months = ratio_months(numer_node.monthly_rollup, denom_node.monthly_rollup)

    changed = False
    records: list[CategoryRecord] = []
    for record in leaf.records:
        if record.is_ratio_row and record.major_category == ratio_config.ratio_label:
            records.append(dataclasses.replace(record, monthly_values=dict(months)))
            changed = True
        else:
            records.append(record)

    if not changed:
        return leaf
    # Ratio records never enter rollups, so the leaf rollup stays valid.
    return dataclasses.replace(leaf, records=tuple(records))


def _recalc_subtree(
    node: CategoryNode,
    numerator_root: CategoryNode,
    denominator_root: CategoryNode,
    ratio_config: RatioConfig,
) -> CategoryNode:
    if isinstance(node, LeafNode):
        if node.depth != 2:
            return node
        return _recalc_leaf(node, numerator_root, denominator_root, ratio_config)

    children = tuple(
        _recalc_subtree(child, numerator_root, denominator_root, ratio_config)
        for child in node.children
    )
    if all(new is old for new, old in zip(children, node.children)):
        return node
    return dataclasses.replace(node, children=children)


def _recalc_tree(
    tree: Sequence[CategoryNode], ratio_config: RatioConfig
) -> list[CategoryNode]:
    ratio_root = find_top_level(tree, ratio_config.ratio_label)
    numerator_root = find_top_level(tree, ratio_config.numerator_label)
    denominator_root = find_top_level(tree, ratio_config.denominator_label)

    if ratio_root is None or numerator_root is None or denominator_root is None:
        return list(tree)

    new_root = _recalc_subtree(
        ratio_root, numerator_root, denominator_root, ratio_config
    )
    return [new_root if node is ratio_root else node for node in tree]


def recalculate_ratios(
    prior_tree: Sequence[CategoryNode],
    current_tree: Sequence[CategoryNode],
    ratio_config: Optional[RatioConfig] = None,
) -> tuple[list[CategoryNode], list[CategoryNode]]:
    """Recompute the configured ratio rows of a prior/current tree pair.

    Args:
        prior_tree: Forest of the prior period.
        current_tree: Forest of the current period.
        ratio_config: Ratio, numerator and denominator labels (defaults
            when None).

    Returns:
        ``(new_prior_tree, new_current_tree)``. Node keys and every
        non-targeted record are identical to the inputs; only the monthly
        values of ratio records of the ratio category change.
    """
    ratio_config = ratio_config or RatioConfig()
    return _recalc_tree(prior_tree, ratio_config), _recalc_tree(
        current_tree, ratio_config
    )
