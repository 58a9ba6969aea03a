from typing import Optional

import pytest

from pl_finsight.config import TreeConfig
from pl_finsight.models import CategoryRecord, InternalNode, LeafNode, node_key
from pl_finsight.tree import (
    build_tree,
    find_mid_leaf,
    find_top_level,
    iter_leaves,
    iter_nodes,
)
from pl_finsight.values import MONTHS


def _record(
    major: str,
    mid: str,
    minor: Optional[str] = None,
    values: tuple[float, ...] = (),
    ratio: bool = False,
) -> CategoryRecord:
    monthly = {m: 0.0 for m in MONTHS}
    for month, value in enumerate(values, start=1):
        monthly[month] = value
    return CategoryRecord(
        period="2026",
        entity="Total",
        major_category=major,
        mid_category=mid,
        minor_category=minor,
        monthly_values=monthly,
        is_ratio_row=ratio,
    )


@pytest.fixture
def records() -> list[CategoryRecord]:
    return [
        _record("TAG매출", "MLB", "온라인", (100, 200)),
        _record("매출원가", "MLB", "무시됨", (30, 40)),
        _record("TAG매출", "MLB", None, (10, 20)),
        _record("TAG매출", "Discovery", "오프라인", (50, 0)),
        _record("매출원가", "Discovery", None, (5, 5)),
        _record("Tag대비 원가율", "MLB", None, (33.0, 33.0), ratio=True),
        _record("매출원가", "MLB", None, (1, 1)),
    ]


def test_empty_input_gives_empty_forest() -> None:
    assert build_tree([]) == []


def test_forest_order_is_first_seen(records) -> None:
    forest = build_tree(records)
    assert [n.label for n in forest] == ["TAG매출", "매출원가", "Tag대비 원가율"]
    tag = forest[0]
    assert [c.label for c in tag.children] == ["MLB", "Discovery"]
    assert [c.label for c in tag.children[0].children] == ["온라인", "(기타)"]


def test_three_level_and_two_level_shapes(records) -> None:
    forest = build_tree(records)
    tag, cost, ratio = forest

    assert isinstance(tag, InternalNode)
    mlb = tag.children[0]
    assert isinstance(mlb, InternalNode)
    assert all(isinstance(leaf, LeafNode) and leaf.depth == 3 for leaf in mlb.children)

    # Minor categories are ignored for two-level majors
    assert all(isinstance(c, LeafNode) and c.depth == 2 for c in cost.children)
    assert len(cost.children[0].records) == 2
    assert all(isinstance(c, LeafNode) for c in ratio.children)


def test_node_keys_are_reconstructible(records) -> None:
    forest = build_tree(records)
    keys = [n.key for n in iter_nodes(forest)]
    assert node_key("TAG매출") in keys
    assert node_key("TAG매출", "MLB") == "L2|TAG매출|MLB"
    assert node_key("TAG매출", "MLB", "(기타)") in keys
    assert node_key("매출원가", "Discovery") in keys
    assert len(keys) == len(set(keys))


def test_rollups(records) -> None:
    forest = build_tree(records)
    tag, cost, ratio = forest

    assert tag.monthly_rollup[1] == 160.0
    assert tag.monthly_rollup[2] == 220.0
    assert tag.children[0].monthly_rollup[1] == 110.0
    assert cost.children[0].monthly_rollup[1] == 31.0
    assert cost.monthly_rollup[2] == 46.0

    # Ratio rows never enter rollups
    assert ratio.monthly_rollup[1] == 0.0
    assert ratio.has_ratio_row
    assert ratio.children[0].has_ratio_row
    assert not tag.has_ratio_row


def test_rollups_sum_children_for_every_node(records) -> None:
    for node in iter_nodes(build_tree(records)):
        for m in MONTHS:
            if isinstance(node, InternalNode):
                expected = sum(c.monthly_rollup[m] for c in node.children)
            else:
                expected = sum(
                    r.monthly_values[m] for r in node.records if not r.is_ratio_row
                )
            assert node.monthly_rollup[m] == pytest.approx(expected)
        assert sorted(node.monthly_rollup) == list(MONTHS)


def test_ratio_flag_propagates_to_ancestors() -> None:
    forest = build_tree(
        [
            _record("TAG매출", "A", "x", (100,)),
            _record("TAG매출", "A", "y", (5,), ratio=True),
        ]
    )
    (tag,) = forest
    assert tag.has_ratio_row
    assert tag.children[0].has_ratio_row
    x, y = tag.children[0].children
    assert not x.has_ratio_row
    assert y.has_ratio_row
    assert tag.monthly_rollup[1] == 100.0


def test_records_without_major_or_mid_are_dropped() -> None:
    forest = build_tree(
        [
            _record("", "A", None, (1,)),
            _record("매출원가", "", None, (2,)),
            _record("판관비", "", None, (3,)),
            _record("매출원가", "B", None, (4,)),
        ]
    )
    assert [n.label for n in forest] == ["매출원가"]
    assert forest[0].monthly_rollup[1] == 4.0


def test_three_level_categories_are_configurable() -> None:
    config = TreeConfig(three_level_categories=("판관비",), other_label="(other)")
    forest = build_tree(
        [
            _record("판관비", "인건비", None, (1,)),
            _record("TAG매출", "A", "x", (2,)),
        ],
        config,
    )
    sga, tag = forest
    assert sga.children[0].children[0].label == "(other)"
    assert isinstance(tag.children[0], LeafNode)


def test_traversal_helpers(records) -> None:
    forest = build_tree(records)
    tag = find_top_level(forest, "TAG매출")
    assert tag is forest[0]
    assert find_top_level(forest, "없음") is None

    cost = find_top_level(forest, "매출원가")
    discovery = find_mid_leaf(cost, "Discovery")
    assert discovery is not None and discovery.key == "L2|매출원가|Discovery"

    # Mid categories of a three-level major are internal nodes: no match
    assert find_mid_leaf(tag, "Discovery") is None
    assert find_mid_leaf(tag, "온라인") is None

    assert [leaf.label for leaf in iter_leaves(tag)] == ["온라인", "(기타)", "오프라인"]
