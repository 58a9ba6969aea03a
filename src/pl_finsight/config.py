# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for PL FinSight.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application,
- providing built-in defaults matching the Korean P/L exports the
  dashboard was designed for.

Every label that drives behaviour (which major categories get a third tree
level, which categories feed the cost ratio, which header words identify
the category columns) lives in these dataclasses and is passed explicitly
to the pipeline stages.
"""

import tomllib  # Python 3.11+
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_CONFIG_FILE = "pl_finsight_config.toml"


@dataclass(frozen=True)
class ColumnsConfig:
    """Header markers and tolerances used by the CSV loader.

    Attributes:
        major_marker: Word identifying the major category column.
        mid_marker: Word identifying the mid category column.
        minor_marker: Word identifying the (optional) minor category column.
        year_marker: Unit following the year in month headers ("26년1월").
        month_marker: Unit following the month in month headers.
        row_tolerance: Number of missing trailing cells tolerated on a data
            line before the line is skipped.
    """

    major_marker: str = "대분류"
    mid_marker: str = "중분류"
    minor_marker: str = "소분류"
    year_marker: str = "년"
    month_marker: str = "월"
    row_tolerance: int = 5


@dataclass(frozen=True)
class TreeConfig:
    """Tree shape configuration.

    Attributes:
        three_level_categories: Major categories whose tree goes down to the
            minor category. All other major categories stop at the mid
            category.
        other_label: Bucket label for records without a minor category in
            a three-level major category.
    """

    three_level_categories: tuple[str, ...] = ("TAG매출", "실판매출")
    other_label: str = "(기타)"


@dataclass(frozen=True)
class RatioConfig:
    """Labels of the ratio recomputed from two other categories.

    ratio = numerator / denominator * 100, month by month.
    """

    ratio_label: str = "Tag대비 원가율"
    numerator_label: str = "매출원가"
    denominator_label: str = "TAG매출"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for PL FinSight.

    This aggregates:
    - where P/L exports are stored and how their files are named,
    - the periods and entities a query may ask for,
    - loader, tree and ratio configuration,
    - display and logging options for the CLI.
    """

    data_dir: Path = Path("data/pl")
    file_pattern: str = "{period} {entity}.csv"
    encodings: tuple[str, ...] = ("utf-8", "cp949")
    periods: tuple[str, ...] = ("2024", "2025", "2026")
    entities: tuple[str, ...] = (
        "Total",
        "MLB",
        "Discovery",
        "KIDS",
        "DUVETICA",
        "SUPRA",
    )
    columns: ColumnsConfig = field(default_factory=ColumnsConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    ratio: RatioConfig = field(default_factory=RatioConfig)
    display_mode: str = "table"
    decimals: int = 1
    log_level: str = "INFO"


def default_config() -> AppConfig:
    """Return the built-in configuration."""
    return AppConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return the table ``name`` of ``raw``, or an empty mapping."""
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _str_tuple(value: Any, default: tuple[str, ...], name: str) -> tuple[str, ...]:
    """Convert a TOML array of strings to a tuple, keeping ``default`` if unset."""
    if value is None:
        return default
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"Invalid value for '{name}', expected an array of strings.")
    return tuple(str(v) for v in value)


def _parse_columns(section: Mapping[str, Any]) -> ColumnsConfig:
    defaults = ColumnsConfig()
    raw_tolerance = section.get("row_tolerance", defaults.row_tolerance)
    try:
        row_tolerance = int(raw_tolerance)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'columns.row_tolerance'. Expected an integer."
        ) from exc
    if row_tolerance < 0:
        raise ValueError("'columns.row_tolerance' cannot be negative.")

    return ColumnsConfig(
        major_marker=str(section.get("major_marker") or defaults.major_marker),
        mid_marker=str(section.get("mid_marker") or defaults.mid_marker),
        minor_marker=str(section.get("minor_marker") or defaults.minor_marker),
        year_marker=str(section.get("year_marker") or defaults.year_marker),
        month_marker=str(section.get("month_marker") or defaults.month_marker),
        row_tolerance=row_tolerance,
    )


def _parse_tree(section: Mapping[str, Any]) -> TreeConfig:
    defaults = TreeConfig()
    return TreeConfig(
        three_level_categories=_str_tuple(
            section.get("three_level_categories"),
            defaults.three_level_categories,
            "tree.three_level_categories",
        ),
        other_label=str(section.get("other_label") or defaults.other_label),
    )


def _parse_ratio(section: Mapping[str, Any]) -> RatioConfig:
    defaults = RatioConfig()
    return RatioConfig(
        ratio_label=str(section.get("label") or defaults.ratio_label),
        numerator_label=str(section.get("numerator") or defaults.numerator_label),
        denominator_label=str(
            section.get("denominator") or defaults.denominator_label
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the PL FinSight configuration from a TOML file.

    Expected top-level sections in the TOML file (all optional)
    -----------------------------------------------------------
    [data]
        ``dir`` (directory holding the P/L exports), ``file_pattern``
        (file name template using ``{period}`` and ``{entity}``) and
        ``encodings`` (tried in order when decoding an export).

    [query]
        ``periods`` and ``entities`` accepted by a query.

    [columns]
        Header markers of the category columns, year/month units of the
        month headers and ``row_tolerance``.

    [tree]
        ``three_level_categories`` and ``other_label``.

    [ratio]
        ``label``, ``numerator`` and ``denominator`` of the recomputed ratio.

    [display]
        ``mode`` (table, csv, json, both) and ``decimals``.

    [logging]
        ``level``.

    Notes
    -----
    - When ``config_path`` is None, ``pl_finsight_config.toml`` in the
      current directory is used if it exists; otherwise the built-in
      defaults are returned.
    - ``data.dir`` is resolved relative to the directory of the TOML file.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        if not config_file.is_file():
            return default_config()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent
    defaults = default_config()

    # 1) Data location
    data_section = _section(raw, "data")
    data_dir_raw = data_section.get("dir") or str(defaults.data_dir)
    data_dir = (base_dir / str(data_dir_raw)).resolve()
    file_pattern = str(data_section.get("file_pattern") or defaults.file_pattern)
    encodings = _str_tuple(
        data_section.get("encodings"), defaults.encodings, "data.encodings"
    )
    if not encodings:
        raise ValueError("'data.encodings' must list at least one encoding.")

    # 2) Accepted query values
    query_section = _section(raw, "query")
    periods = _str_tuple(
        query_section.get("periods"), defaults.periods, "query.periods"
    )
    entities = _str_tuple(
        query_section.get("entities"), defaults.entities, "query.entities"
    )

    # 3) Pipeline stages
    columns = _parse_columns(_section(raw, "columns"))
    tree = _parse_tree(_section(raw, "tree"))
    ratio = _parse_ratio(_section(raw, "ratio"))

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", defaults.display_mode))
    try:
        decimals = int(display_section.get("decimals", defaults.decimals))
    except (TypeError, ValueError):
        decimals = defaults.decimals

    # 5) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", defaults.log_level)).upper()

    return AppConfig(
        data_dir=data_dir,
        file_pattern=file_pattern,
        encodings=encodings,
        periods=periods,
        entities=entities,
        columns=columns,
        tree=tree,
        ratio=ratio,
        display_mode=display_mode,
        decimals=decimals,
        log_level=log_level,
    )
