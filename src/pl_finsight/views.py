# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for PL FinSight.

This module prepares category trees for the presentation layer:

- JSON-ready serialisation of a forest (``forest_to_dicts``) and its
  inverse (``forest_from_dicts``). A serialised node has ``children`` when
  it is internal and ``rows`` when it is a leaf, never both.
- Flattening of a forest into display order (``flatten_forest``) with
  optional expansion state and detail level.
- Matching of a prior and a current forest row by row on the node key
  (``merge_tree_pair``). Keys present on one side only give a row with
  None on the other side.
- The comparison table itself (``comparison_table``), a pandas DataFrame
  with the six figures computed by ``calc`` for each merged row.

Detail levels follow the usual view names:

- simplified: major categories only (depth 1),
- regular:    major and mid categories (depth <= 2),
- detailed:   every depth.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any, Optional

import pandas as pd

from .calc import ColumnFigures, calc_cols, calc_rate_cols_from_numer_denom
from .config import RatioConfig
from .models import CategoryNode, CategoryRecord, InternalNode, LeafNode, node_key
from .tree import find_mid_leaf, find_top_level, iter_leaves
from .values import MONTHS, MonthlyValues, empty_months, month_value

VIEW_MAX_DEPTH: dict[str, Optional[int]] = {
    "simplified": 1,
    "regular": 2,
    "detailed": None,
}

TABLE_COLUMNS = [
    "key",
    "depth",
    "label",
    "is_ratio",
    "prior_month",
    "curr_month",
    "prior_ytd",
    "curr_ytd",
    "prior_year_total",
    "curr_year_total",
    "month_diff",
    "month_change_pct",
]


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def months_to_dict(monthly: Mapping[int, float]) -> dict[str, float]:
    """{1: x, ...} -> {"m1": x, ..., "m12": z} (all 12 keys)."""
    return {f"m{m}": month_value(monthly, m) for m in MONTHS}


def months_from_dict(data: Mapping[str, Any]) -> MonthlyValues:
    monthly = empty_months()
    for m in MONTHS:
        monthly[m] = float(data.get(f"m{m}", 0.0) or 0.0)
    return monthly


def record_to_dict(record: CategoryRecord) -> dict[str, Any]:
    return {
        "period": record.period,
        "entity": record.entity,
        "majorCategory": record.major_category,
        "midCategory": record.mid_category,
        "minorCategory": record.minor_category,
        "monthlyValues": months_to_dict(record.monthly_values),
        "isRatioRow": record.is_ratio_row,
    }


def record_from_dict(data: Mapping[str, Any]) -> CategoryRecord:
    return CategoryRecord(
        period=str(data["period"]),
        entity=str(data["entity"]),
        major_category=str(data["majorCategory"]),
        mid_category=str(data["midCategory"]),
        minor_category=data.get("minorCategory") or None,
        monthly_values=months_from_dict(data.get("monthlyValues") or {}),
        is_ratio_row=bool(data.get("isRatioRow", False)),
    )


def node_to_dict(node: CategoryNode) -> dict[str, Any]:
    """Serialise one node (and its subtree) to plain Python types."""
    out: dict[str, Any] = {
        "key": node.key,
        "label": node.label,
        "level": node.depth,
        "monthlyRollup": months_to_dict(node.monthly_rollup),
        "hasRatioRow": node.has_ratio_row,
    }
    if isinstance(node, InternalNode):
        out["children"] = [node_to_dict(child) for child in node.children]
    else:
        out["rows"] = [record_to_dict(record) for record in node.records]
    return out


def forest_to_dicts(forest: Iterable[CategoryNode]) -> list[dict[str, Any]]:
    return [node_to_dict(node) for node in forest]


def node_from_dict(
    data: Mapping[str, Any], parent_path: tuple[str, ...] = ()
) -> CategoryNode:
    """Rebuild a node serialised by ``node_to_dict``.

    Raises:
        ValueError: if the node has both or neither of children and rows.
    """
    path = (*parent_path, str(data["label"]))
    has_children = "children" in data
    has_rows = "rows" in data
    if has_children == has_rows:
        raise ValueError(
            f"Serialized node {data.get('key')!r} must have either "
            "'children' or 'rows'."
        )

    common = {
        "key": str(data.get("key") or node_key(*path)),
        "label": path[-1],
        "depth": int(data.get("level", len(path))),
        "path": path,
        "monthly_rollup": months_from_dict(data.get("monthlyRollup") or {}),
        "has_ratio_row": bool(data.get("hasRatioRow", False)),
    }
    if has_children:
        children = tuple(node_from_dict(c, path) for c in data["children"])
        return InternalNode(children=children, **common)
    records = tuple(record_from_dict(r) for r in data["rows"])
    return LeafNode(records=records, **common)


def forest_from_dicts(data: Iterable[Mapping[str, Any]]) -> list[CategoryNode]:
    return [node_from_dict(node) for node in data]


# ---------------------------------------------------------------------------
# Flattening and tree-pair matching
# ---------------------------------------------------------------------------


def flatten_forest(
    forest: Iterable[CategoryNode],
    expanded: Optional[set[str]] = None,
    max_depth: Optional[int] = None,
) -> list[CategoryNode]:
    """Return the nodes of ``forest`` in display order (pre-order).

    Args:
        forest: Forest to flatten.
        expanded: Keys of the nodes whose children are shown. None means
            every node is expanded.
        max_depth: Deepest depth to include (None for no limit).
    """
    out: list[CategoryNode] = []

    def _walk(nodes: Iterable[CategoryNode]) -> None:
        for node in nodes:
            if max_depth is not None and node.depth > max_depth:
                continue
            out.append(node)
            if isinstance(node, InternalNode) and (
                expanded is None or node.key in expanded
            ):
                _walk(node.children)

    _walk(forest)
    return out


@dataclass(frozen=True)
class MergedRow:
    """One display row matching a prior and a current node by key."""

    key: str
    depth: int
    prior: Optional[CategoryNode]
    current: Optional[CategoryNode]

    @property
    def node(self) -> CategoryNode:
        """The current node when present, the prior node otherwise."""
        if self.current is not None:
            return self.current
        if self.prior is None:
            raise ValueError(f"Merged row {self.key!r} has no node on either side.")
        return self.prior


def merge_tree_pair(
    prior: Iterable[CategoryNode],
    current: Iterable[CategoryNode],
    expanded: Optional[set[str]] = None,
    max_depth: Optional[int] = None,
) -> list[MergedRow]:
    """Match the flattened prior and current forests on node keys.

    Rows follow the prior forest order; keys found only in the current
    forest are appended in their own order.
    """
    by_key: dict[str, dict[str, Any]] = {}

    for node in flatten_forest(prior, expanded, max_depth):
        by_key[node.key] = {"depth": node.depth, "prior": node, "current": None}

    for node in flatten_forest(current, expanded, max_depth):
        entry = by_key.get(node.key)
        if entry is None:
            by_key[node.key] = {"depth": node.depth, "prior": None, "current": node}
        else:
            entry["current"] = node

    return [MergedRow(key=key, **entry) for key, entry in by_key.items()]


# ---------------------------------------------------------------------------
# Comparison table
# ---------------------------------------------------------------------------


def _numer_denom(
    forest: Sequence[CategoryNode], path: tuple[str, ...], ratio_config: RatioConfig
) -> Optional[tuple[MonthlyValues, MonthlyValues]]:
    """Numerator/denominator rollups matching a ratio node path, or None."""
    numer_root = find_top_level(forest, ratio_config.numerator_label)
    denom_root = find_top_level(forest, ratio_config.denominator_label)
    if numer_root is None or denom_root is None:
        return None
    if len(path) == 1:
        return numer_root.monthly_rollup, denom_root.monthly_rollup

    numer = find_mid_leaf(numer_root, path[1])
    denom = find_mid_leaf(denom_root, path[1])
    if numer is None or denom is None:
        return None
    return numer.monthly_rollup, denom.monthly_rollup


def _ratio_values(node: Optional[CategoryNode]) -> MonthlyValues:
    """Monthly values of the first ratio record below ``node``."""
    if node is None:
        return empty_months()
    for leaf in iter_leaves(node):
        for record in leaf.records:
            if record.is_ratio_row:
                return record.monthly_values
    return empty_months()


def _row_figures(
    row: MergedRow,
    month: int,
    prior_forest: Sequence[CategoryNode],
    current_forest: Sequence[CategoryNode],
    ratio_config: RatioConfig,
) -> ColumnFigures:
    node = row.node

    if not node.has_ratio_row:
        prior = row.prior.monthly_rollup if row.prior is not None else {}
        current = row.current.monthly_rollup if row.current is not None else {}
        return calc_cols(month, prior, current, False)

    if node.path[0] == ratio_config.ratio_label:
        prior_pair = _numer_denom(prior_forest, node.path, ratio_config)
        curr_pair = _numer_denom(current_forest, node.path, ratio_config)
        if prior_pair is not None or curr_pair is not None:
            empty = (empty_months(), empty_months())
            prior_numer, prior_denom = prior_pair or empty
            curr_numer, curr_denom = curr_pair or empty
            return calc_rate_cols_from_numer_denom(
                month, prior_numer, prior_denom, curr_numer, curr_denom
            )

    return calc_cols(month, _ratio_values(row.prior), _ratio_values(row.current), True)


def _diff(prior: Optional[float], current: Optional[float]) -> float:
    if prior is None or current is None:
        return math.nan
    return current - prior


def _change_pct(prior: Optional[float], current: Optional[float]) -> float:
    if prior is None or current is None or prior == 0:
        return math.nan
    return current / prior * 100


def comparison_table(
    prior_forest: Sequence[CategoryNode],
    current_forest: Sequence[CategoryNode],
    month: int,
    ratio_config: Optional[RatioConfig] = None,
    expanded: Optional[set[str]] = None,
    view: str = "detailed",
    decimals: Optional[int] = None,
) -> pd.DataFrame:
    """Build the prior/current comparison table for a reference month.

    Args:
        prior_forest: Prior-period forest (after ratio recalculation).
        current_forest: Current-period forest (after ratio recalculation).
        month: Reference month (1..12).
        ratio_config: Labels of the ratio category and of its numerator
            and denominator (defaults when None).
        expanded: Keys of expanded nodes (None expands everything).
        view: "simplified", "regular" or "detailed".
        decimals: When set, numeric figures are rounded.

    Returns:
        A DataFrame with the columns listed in ``TABLE_COLUMNS``, one row
        per merged node, in display order.

    Raises:
        ValueError: if ``view`` is unknown.
    """
    if view not in VIEW_MAX_DEPTH:
        raise ValueError(
            f"Unknown view {view!r}, expected one of: {', '.join(VIEW_MAX_DEPTH)}."
        )
    ratio_config = ratio_config or RatioConfig()

    rows: list[dict[str, object]] = []
    for merged in merge_tree_pair(
        prior_forest, current_forest, expanded, VIEW_MAX_DEPTH[view]
    ):
        node = merged.node
        figures = _row_figures(
            merged, month, prior_forest, current_forest, ratio_config
        )
        rows.append(
            {
                "key": merged.key,
                "depth": merged.depth,
                "label": node.label,
                "is_ratio": node.has_ratio_row,
                **asdict(figures),
                "month_diff": _diff(figures.prior_month, figures.curr_month),
                "month_change_pct": _change_pct(
                    figures.prior_month, figures.curr_month
                ),
            }
        )

    if not rows:
        return pd.DataFrame(columns=TABLE_COLUMNS)

    df = pd.DataFrame(rows)[TABLE_COLUMNS]
    if decimals is not None:
        numeric = df.columns[4:]
        df[numeric] = df[numeric].apply(pd.to_numeric).round(decimals)
    return df
