# PL FinSight - Profit & Loss comparison dashboard core
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for PL FinSight.

The CLI is intentionally thin: it does not implement any P/L logic itself.
It loads the configuration, asks the pipeline for the prior/current trees
of one entity and renders them.

High-level pipeline
-------------------

1) Load the TOML configuration (``pl_finsight_config.toml`` by default,
   built-in defaults when the file does not exist) using
   ``load_app_config()``.

2) Configure logging (level from ``[logging]`` or ``--log-level``).

3) Build the comparison of ``--prior`` and ``--current`` for ``--entity``
   (``pipeline.build_comparison``): both exports are loaded, turned into
   category trees and their ratio rows are recomputed.

4) Render the result according to the display mode:

   - ``table``: the comparison table for ``--month`` is printed,
   - ``csv``:   the comparison table is written to ``--output``,
   - ``json``:  both trees are written as JSON to ``--output``,
   - ``both``:  table and CSV.

Views
-----

``--view`` selects the level of detail of the table:

- ``simplified``: major categories only,
- ``regular``:    major and mid categories,
- ``detailed``:   every level (default).
"""

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from . import __version__
from .config import load_app_config
from .io import LoadError
from .pipeline import PeriodComparison, build_comparison
from .views import VIEW_MAX_DEPTH, comparison_table, forest_to_dicts

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="pl-finsight",
        description=(
            "PL FinSight - Profit & Loss comparison dashboard. Reads P/L CSV "
            "exports, builds category trees, recomputes ratio rows and renders "
            "a prior/current comparison table."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of pl_finsight and exit.",
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'pl_finsight_config.toml' in the current directory is used when "
            "it exists, otherwise built-in defaults."
        ),
    )

    # Query
    ap.add_argument("--entity", default="Total", help="Entity / brand to report.")
    ap.add_argument("--prior", dest="prior_period", help="Prior period (e.g. 2025).")
    ap.add_argument(
        "--current", dest="current_period", help="Current period (e.g. 2026)."
    )
    ap.add_argument(
        "--month",
        type=int,
        default=1,
        help="Reference month (1-12) for the month and year-to-date columns.",
    )

    # Display options
    ap.add_argument(
        "--view",
        choices=list(VIEW_MAX_DEPTH),
        default="detailed",
        help=(
            "Level of detail: simplified = major categories; "
            "regular = major + mid categories; detailed = all levels."
        ),
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "json", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints to stdout, 'csv' writes the table as CSV, "
            "'json' writes both trees as JSON, 'both' = table + csv."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV/JSON files (default: data/output).",
    )
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Fail on missing or malformed exports instead of showing no data.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        help="Override the logging level (DEBUG, INFO, WARNING, ...).",
    )

    return ap


def _write_json(comparison: PeriodComparison, output_dir: Path, stamp: str) -> None:
    for period, tree in (
        (comparison.prior_period, comparison.prior_tree),
        (comparison.current_period, comparison.current_tree),
    ):
        path = output_dir / f"pl_tree_{period}_{comparison.entity}_{stamp}.json"
        payload = {
            "period": period,
            "entity": comparison.entity,
            "tree": forest_to_dicts(tree),
        }
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        print(f"Wrote {path} ({len(tree)} major categories)")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the PL FinSight CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"pl_finsight version {__version__}")
        return

    # 1) Configuration
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    # 2) Logging
    level_name = (args.log_level or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # 3) Query defaults: the last two configured periods
    current_period = args.current_period or config.periods[-1]
    prior_period = args.prior_period
    if prior_period is None:
        if len(config.periods) < 2:
            parser.error(
                "--prior is required when fewer than two periods are configured."
            )
        prior_period = config.periods[-2]

    if not 1 <= args.month <= 12:
        parser.error(f"--month must be between 1 and 12, got {args.month}.")

    try:
        comparison = build_comparison(
            config,
            entity=args.entity,
            prior_period=prior_period,
            current_period=current_period,
            strict=args.strict,
        )
    except (OSError, LoadError, ValueError) as exc:
        parser.error(str(exc))

    if not comparison.prior_tree and not comparison.current_tree:
        print(f"No P/L data for {args.entity} ({prior_period} / {current_period}).")
        return

    table = comparison_table(
        comparison.prior_tree,
        comparison.current_tree,
        month=args.month,
        ratio_config=config.ratio,
        view=args.view,
        decimals=config.decimals,
    )

    # 4) Render
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        print()
        print(
            f"=== P/L {args.entity}: {prior_period} vs {current_period} "
            f"(month {args.month}) ==="
        )
        print(table.to_string(index=False))

    if display_mode in {"csv", "json", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        if display_mode in {"csv", "both"}:
            path = output_dir / f"pl_comparison_{args.entity}_{stamp}.csv"
            table.to_csv(path, index=False)
            print(f"Wrote {path} ({len(table)} rows)")

        if display_mode == "json":
            _write_json(comparison, output_dir, stamp)


if __name__ == "__main__":
    main()
