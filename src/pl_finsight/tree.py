# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Category tree construction for PL FinSight.

``build_tree()`` groups the records of one P/L export into a forest:

    depth 1 : major category  (always internal)
    depth 2 : mid category    (leaf, or internal for three-level majors)
    depth 3 : minor category  (leaf, three-level majors only)

Which major categories get a third level is configuration
(``TreeConfig.three_level_categories``). Inside such a category, records
without a minor category are grouped under ``TreeConfig.other_label``.

Nodes appear in the order their category was first seen in the input, at
every level.

Rollups
-------
Each node carries ``monthly_rollup``, the month-by-month sum of the amount
records of its subtree. Ratio records (percentages) are kept on their leaf
but never enter a rollup; they set ``has_ratio_row`` on the leaf and all of
its ancestors instead.

The module also provides the traversal helpers used by the ratio
recalculation and by the views.
"""

from collections.abc import Iterable, Iterator
from typing import Optional

from .config import TreeConfig
from .models import CategoryNode, CategoryRecord, InternalNode, LeafNode, node_key
from .values import MonthlyValues, add_months, empty_months


def _group_by(
    records: Iterable[CategoryRecord], key_func
) -> dict[str, list[CategoryRecord]]:
    """Group records by ``key_func`` keeping first-seen key order."""
    groups: dict[str, list[CategoryRecord]] = {}
    for record in records:
        groups.setdefault(key_func(record), []).append(record)
    return groups


def _records_rollup(records: Iterable[CategoryRecord]) -> MonthlyValues:
    """Sum the monthly values of non-ratio records."""
    rollup = empty_months()
    for record in records:
        if not record.is_ratio_row:
            add_months(rollup, record.monthly_values)
    return rollup


def _children_rollup(children: Iterable[CategoryNode]) -> MonthlyValues:
    rollup = empty_months()
    for child in children:
        add_months(rollup, child.monthly_rollup)
    return rollup


def _make_leaf(path: tuple[str, ...], records: list[CategoryRecord]) -> LeafNode:
    return LeafNode(
        key=node_key(*path),
        label=path[-1],
        depth=len(path),
        path=path,
        monthly_rollup=_records_rollup(records),
        has_ratio_row=any(r.is_ratio_row for r in records),
        records=tuple(records),
    )


def _make_internal(
    path: tuple[str, ...], children: list[CategoryNode]
) -> InternalNode:
    return InternalNode(
        key=node_key(*path),
        label=path[-1],
        depth=len(path),
        path=path,
        monthly_rollup=_children_rollup(children),
        has_ratio_row=any(c.has_ratio_row for c in children),
        children=tuple(children),
    )


def build_tree(
    records: Iterable[CategoryRecord],
    tree_config: Optional[TreeConfig] = None,
) -> list[CategoryNode]:
    """Build the category forest of one P/L export.

    Args:
        records: Records of one (period, entity), as returned by
            ``io.load_records``.
        tree_config: Tree shape configuration (defaults when None).

    Returns:
        One depth-1 node per major category, in first-seen order. An empty
        input gives an empty list.
    """
    tree_config = tree_config or TreeConfig()

    # Records without a major or mid category cannot be placed in the tree.
    kept = [r for r in records if r.major_category and r.mid_category]

    roots: list[CategoryNode] = []
    for major, major_records in _group_by(kept, lambda r: r.major_category).items():
        three_levels = major in tree_config.three_level_categories

        mid_nodes: list[CategoryNode] = []
        for mid, mid_records in _group_by(
            major_records, lambda r: r.mid_category
        ).items():
            if not three_levels:
                mid_nodes.append(_make_leaf((major, mid), mid_records))
                continue

            minor_groups = _group_by(
                mid_records,
                lambda r: r.minor_category or tree_config.other_label,
            )
            minor_nodes: list[CategoryNode] = [
                _make_leaf((major, mid, minor), minor_records)
                for minor, minor_records in minor_groups.items()
            ]
            mid_nodes.append(_make_internal((major, mid), minor_nodes))

        roots.append(_make_internal((major,), mid_nodes))

    return roots


# ---------------------------------------------------------------------------
# Traversal helpers
# ---------------------------------------------------------------------------


def iter_nodes(forest: Iterable[CategoryNode]) -> Iterator[CategoryNode]:
    """Yield every node of ``forest`` in depth-first pre-order."""
    for node in forest:
        yield node
        if isinstance(node, InternalNode):
            yield from iter_nodes(node.children)


def iter_leaves(node: CategoryNode) -> Iterator[LeafNode]:
    """Yield the leaves below (or equal to) ``node``, left to right."""
    if isinstance(node, LeafNode):
        yield node
    else:
        for child in node.children:
            yield from iter_leaves(child)


def find_top_level(
    forest: Iterable[CategoryNode], label: str
) -> Optional[CategoryNode]:
    """Return the first depth-1 node labelled ``label``, or None."""
    for node in forest:
        if node.label == label:
            return node
    return None


def find_mid_leaf(node: CategoryNode, label: str) -> Optional[LeafNode]:
    """Depth-first search for the first depth-2 leaf labelled ``label``.

    Internal depth-2 nodes (mid categories of a three-level major) never
    match. If two mid categories share a label in the subtree, the first
    one in tree order wins.
    """
    if isinstance(node, LeafNode):
        if node.depth == 2 and node.label == label:
            return node
        return None
    for child in node.children:
        found = find_mid_leaf(child, label)
        if found is not None:
            return found
    return None
