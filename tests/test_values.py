import pytest

from pl_finsight.values import (
    empty_months,
    is_percentage_row,
    normalize_cell,
    parse_value,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("(2,344)", -2344.0),
        ("18,689", 18689.0),
        ("-", 0.0),
        ("", 0.0),
        ("33.00%", 33.0),
        ("  1,234.5 ", 1234.5),
        ("-12", -12.0),
        ("(12.5%)", -12.5),
        ("\ufeff100", 100.0),
        ("1\u00a0000", 0.0),
        (None, 0.0),
    ],
)
def test_parse_value_domain_conventions(raw, expected) -> None:
    assert parse_value(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["abc", "n/a", "12abc", "nan", "inf", "(x)", "%"])
def test_parse_value_never_raises_on_garbage(raw) -> None:
    assert parse_value(raw) == 0.0


def test_parse_value_percent_is_not_divided_by_100() -> None:
    assert parse_value("5%") == 5.0
    assert parse_value("1,250.5%") == 1250.5


def test_normalize_cell_strips_bom_and_collapses_spaces() -> None:
    assert normalize_cell("\ufeff  대분류 ") == "대분류"
    assert normalize_cell("a\u00a0\u00a0 b\t c") == "a b c"
    assert normalize_cell(None) == ""


def test_is_percentage_row() -> None:
    assert is_percentage_row(["", "33%", "1,000"])
    assert not is_percentage_row(["1,000", "", "-"])
    assert not is_percentage_row([])


def test_empty_months_has_twelve_zero_entries() -> None:
    months = empty_months()
    assert sorted(months) == list(range(1, 13))
    assert all(v == 0.0 for v in months.values())
    # Each call returns a fresh mapping
    months[1] = 5.0
    assert empty_months()[1] == 0.0
