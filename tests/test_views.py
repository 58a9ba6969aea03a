import json
import math
from typing import Optional

import pandas as pd
import pytest

from pl_finsight.config import TreeConfig
from pl_finsight.models import CategoryRecord, InternalNode, LeafNode
from pl_finsight.rate_recalc import recalculate_ratios
from pl_finsight.tree import build_tree, iter_leaves
from pl_finsight.values import MONTHS
from pl_finsight.views import (
    TABLE_COLUMNS,
    MergedRow,
    comparison_table,
    flatten_forest,
    forest_from_dicts,
    forest_to_dicts,
    merge_tree_pair,
)


def _record(
    major: str,
    mid: str,
    values: tuple[float, ...],
    minor: Optional[str] = None,
    ratio: bool = False,
    period: str = "2026",
) -> CategoryRecord:
    monthly = {m: 0.0 for m in MONTHS}
    for month, value in enumerate(values, start=1):
        monthly[month] = float(value)
    return CategoryRecord(
        period=period,
        entity="Total",
        major_category=major,
        mid_category=mid,
        minor_category=minor,
        monthly_values=monthly,
        is_ratio_row=ratio,
    )


@pytest.fixture
def prior_forest():
    return build_tree(
        [
            _record("TAG매출", "A", (1000, 1000), minor="온라인", period="2025"),
            _record("매출원가", "A", (250, 250), period="2025"),
            _record("매출원가", "OLD", (5,), period="2025"),
            _record("Tag대비 원가율", "A", (0.0,), ratio=True, period="2025"),
        ]
    )


@pytest.fixture
def current_forest():
    return build_tree(
        [
            _record("TAG매출", "A", (1000, 2000), minor="온라인"),
            _record("매출원가", "A", (300, 400)),
            _record("매출원가", "NEW", (7,)),
            _record("Tag대비 원가율", "A", (0.0,), ratio=True),
            _record("판관비", "인건비", (50, 60)),
        ]
    )


@pytest.fixture
def flat_forests(prior_forest, current_forest):
    """The same records with every major category kept at two levels."""

    def _rebuild(forest):
        records = [
            record
            for root in forest
            for leaf in iter_leaves(root)
            for record in leaf.records
        ]
        return build_tree(records, TreeConfig(three_level_categories=()))

    return _rebuild(prior_forest), _rebuild(current_forest)


def test_serialised_nodes_have_children_or_rows(current_forest) -> None:
    data = forest_to_dicts(current_forest)
    # Plain JSON types only
    json.dumps(data, ensure_ascii=False)

    tag = data[0]
    assert tag["key"] == "L1|TAG매출"
    assert tag["level"] == 1
    assert "children" in tag and "rows" not in tag
    leaf = tag["children"][0]["children"][0]
    assert "rows" in leaf and "children" not in leaf
    assert leaf["rows"][0]["majorCategory"] == "TAG매출"
    assert leaf["rows"][0]["minorCategory"] == "온라인"
    assert set(tag["monthlyRollup"]) == {f"m{m}" for m in MONTHS}


def test_forest_serialisation_round_trip(current_forest) -> None:
    rebuilt = forest_from_dicts(forest_to_dicts(current_forest))
    assert rebuilt == current_forest


def test_node_with_children_and_rows_is_rejected() -> None:
    with pytest.raises(ValueError, match="children"):
        forest_from_dicts([{"key": "L1|X", "label": "X", "children": [], "rows": []}])
    with pytest.raises(ValueError):
        forest_from_dicts([{"key": "L1|X", "label": "X"}])


def test_flatten_forest_pre_order(current_forest) -> None:
    keys = [n.key for n in flatten_forest(current_forest)]
    assert keys[:3] == ["L1|TAG매출", "L2|TAG매출|A", "L3|TAG매출|A|온라인"]
    assert len(keys) == len(set(keys))


def test_flatten_forest_with_expansion_and_depth(current_forest) -> None:
    collapsed = flatten_forest(current_forest, expanded=set())
    assert all(n.depth == 1 for n in collapsed)
    assert len(collapsed) == len(current_forest)

    partial = flatten_forest(current_forest, expanded={"L1|TAG매출"})
    assert [n.key for n in partial][:3] == ["L1|TAG매출", "L2|TAG매출|A", "L1|매출원가"]

    regular = flatten_forest(current_forest, max_depth=2)
    assert max(n.depth for n in regular) == 2


def test_merge_tree_pair_keeps_one_sided_rows(prior_forest, current_forest) -> None:
    rows = merge_tree_pair(prior_forest, current_forest)
    by_key = {row.key: row for row in rows}

    old = by_key["L2|매출원가|OLD"]
    assert old.prior is not None and old.current is None
    new = by_key["L2|매출원가|NEW"]
    assert new.prior is None and new.current is not None
    assert by_key["L2|매출원가|A"].prior is not None
    assert by_key["L2|매출원가|A"].current is not None

    keys = [row.key for row in rows]
    # Prior order first, current-only keys appended
    assert keys.index("L2|매출원가|OLD") < keys.index("L2|매출원가|NEW")
    assert keys[-2:] == ["L1|판관비", "L2|판관비|인건비"]


def test_merged_row_without_nodes_raises() -> None:
    with pytest.raises(ValueError):
        MergedRow(key="L1|X", depth=1, prior=None, current=None).node


def test_comparison_table_amount_rows(prior_forest, current_forest) -> None:
    df = comparison_table(prior_forest, current_forest, month=2)

    assert list(df.columns) == TABLE_COLUMNS
    cost = df.set_index("key").loc["L2|매출원가|A"]
    assert cost["prior_month"] == 250.0
    assert cost["curr_month"] == 400.0
    assert cost["prior_ytd"] == 500.0
    assert cost["curr_ytd"] == 700.0
    assert cost["month_diff"] == 150.0
    assert cost["month_change_pct"] == pytest.approx(160.0)

    sga = df.set_index("key").loc["L1|판관비"]
    assert sga["prior_month"] == 0.0
    assert sga["curr_month"] == 60.0
    assert math.isnan(sga["month_change_pct"])


def test_comparison_table_ratio_rows_use_numerator_and_denominator(
    flat_forests,
) -> None:
    prior, current = recalculate_ratios(*flat_forests)
    df = comparison_table(prior, current, month=2).set_index("key")

    ratio = df.loc["L2|Tag대비 원가율|A"]
    assert bool(ratio["is_ratio"])
    assert ratio["prior_month"] == pytest.approx(25.0)
    assert ratio["curr_month"] == pytest.approx(20.0)
    assert ratio["curr_ytd"] == pytest.approx(700 / 3000 * 100)
    assert ratio["prior_year_total"] == pytest.approx(25.0)

    # The major ratio category compares the two major rollups
    major = df.loc["L1|Tag대비 원가율"]
    assert major["curr_month"] == pytest.approx(20.0)
    assert major["curr_ytd"] == pytest.approx(707 / 3000 * 100)


def test_comparison_table_three_level_denominator(
    prior_forest, current_forest
) -> None:
    # Sales mid categories are internal nodes: the mid ratio row keeps the
    # typed-in values, the major row still divides the two major rollups.
    prior, current = recalculate_ratios(prior_forest, current_forest)
    df = comparison_table(prior, current, month=2).set_index("key")

    ratio = df.loc["L2|Tag대비 원가율|A"]
    assert ratio["curr_month"] == 0.0
    assert pd.isna(ratio["curr_ytd"])

    major = df.loc["L1|Tag대비 원가율"]
    assert major["curr_month"] == pytest.approx(20.0)


def test_comparison_table_ratio_rows_without_match_show_month_only() -> None:
    forest = build_tree([_record("영업이익률", "A", (12.5,), ratio=True)])
    df = comparison_table(forest, forest, month=1).set_index("key")
    row = df.loc["L2|영업이익률|A"]
    assert row["curr_month"] == 12.5
    assert pd.isna(row["curr_ytd"])
    assert pd.isna(row["curr_year_total"])


@pytest.mark.parametrize(
    "view, max_depth", [("simplified", 1), ("regular", 2), ("detailed", 3)]
)
def test_comparison_table_views(prior_forest, current_forest, view, max_depth) -> None:
    df = comparison_table(prior_forest, current_forest, month=1, view=view)
    assert df["depth"].max() == max_depth


def test_comparison_table_rounding(flat_forests) -> None:
    prior, current = recalculate_ratios(*flat_forests)
    df = comparison_table(prior, current, month=2, decimals=1).set_index("key")
    assert df.loc["L2|Tag대비 원가율|A", "curr_ytd"] == pytest.approx(23.3)


def test_comparison_table_unknown_view(prior_forest) -> None:
    with pytest.raises(ValueError, match="Unknown view"):
        comparison_table(prior_forest, [], month=1, view="complete")


def test_comparison_table_empty_forests() -> None:
    df = comparison_table([], [], month=1)
    assert df.empty
    assert list(df.columns) == TABLE_COLUMNS


def test_node_types_survive_round_trip(current_forest) -> None:
    rebuilt = forest_from_dicts(forest_to_dicts(current_forest))
    assert isinstance(rebuilt[0], InternalNode)
    assert isinstance(rebuilt[1].children[0], LeafNode)
