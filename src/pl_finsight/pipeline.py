# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period orchestration for PL FinSight.

This module wires the pipeline stages together for the callers (CLI, web
layer):

1. ``validate_query()`` rejects periods and entities that are not
   configured.
2. ``load_period_tree()`` reads the export of one (period, entity),
   parses it (``io.load_records``) and builds its tree
   (``tree.build_tree``).
3. ``build_comparison()`` loads the prior and current trees of an entity
   and recomputes their ratio rows (``rate_recalc.recalculate_ratios``).

A missing, unreadable or malformed export is not fatal by default: it is
logged and treated as "no data" (an empty tree), so a period that is not
yet available still renders. Pass ``strict=True`` to let the error
propagate instead.

Every call re-reads and rebuilds from scratch; nothing is cached and no
state is shared between calls.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import AppConfig
from .io import LoadError, load_records, read_source_text
from .models import CategoryNode
from .rate_recalc import recalculate_ratios
from .tree import build_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodComparison:
    """
    Prior and current trees of one entity, ready for display.

    Attributes
    ----------
    entity :
        Business unit / brand identifier.
    prior_period, current_period :
        Periods being compared.
    prior_tree, current_tree :
        Forests after ratio recalculation (empty when no data).
    """

    entity: str
    prior_period: str
    current_period: str
    prior_tree: list[CategoryNode]
    current_tree: list[CategoryNode]


def validate_query(config: AppConfig, period: str, entity: str) -> None:
    """
    Check that ``period`` and ``entity`` are configured query values.

    Raises:
        ValueError: if either value is not supported.
    """
    if period not in config.periods:
        raise ValueError(
            f"Unsupported period {period!r}, expected one of: "
            f"{', '.join(config.periods)}."
        )
    if entity not in config.entities:
        raise ValueError(
            f"Unsupported entity {entity!r}, expected one of: "
            f"{', '.join(config.entities)}."
        )


def source_path(config: AppConfig, period: str, entity: str) -> Path:
    """Path of the P/L export of (period, entity)."""
    return Path(config.data_dir) / config.file_pattern.format(
        period=period, entity=entity
    )


def load_period_tree(
    config: AppConfig, period: str, entity: str, strict: bool = False
) -> list[CategoryNode]:
    """
    Load and build the category tree of one (period, entity).

    Parameters
    ----------
    config :
        Application configuration.
    period, entity :
        Query values, validated against the configuration.
    strict :
        When False (default), a missing, unreadable or malformed export
        yields an empty tree and a warning. When True, the error is raised.

    Raises
    ------
    ValueError
        If ``period`` or ``entity`` is not supported (always raised).
    FileNotFoundError, OSError, LoadError
        Only when ``strict`` is True.
    """
    validate_query(config, period, entity)
    path = source_path(config, period, entity)

    try:
        text = read_source_text(path, config.encodings)
        records = load_records(
            text, period, entity, columns=config.columns, source_name=path.name
        )
    except (OSError, LoadError) as exc:
        if strict:
            raise
        logger.warning("No P/L data for %s %s: %s", period, entity, exc)
        return []

    tree = build_tree(records, config.tree)
    logger.info(
        "Loaded %s: %d record(s), %d major categories",
        path.name,
        len(records),
        len(tree),
    )
    return tree


def build_comparison(
    config: AppConfig,
    entity: str,
    prior_period: str,
    current_period: str,
    strict: bool = False,
) -> PeriodComparison:
    """
    Load the prior and current trees of ``entity`` and recompute ratios.

    Ratio recalculation is applied when at least one of the two trees has
    data; each tree is recalculated from its own amounts.
    """
    prior_tree = load_period_tree(config, prior_period, entity, strict=strict)
    current_tree = load_period_tree(config, current_period, entity, strict=strict)

    if prior_tree or current_tree:
        prior_tree, current_tree = recalculate_ratios(
            prior_tree, current_tree, config.ratio
        )

    return PeriodComparison(
        entity=entity,
        prior_period=prior_period,
        current_period=current_period,
        prior_tree=prior_tree,
        current_tree=current_tree,
    )
