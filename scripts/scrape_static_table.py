#!/usr/bin/env python3
"""
Extract one HTML table from a static page.

Fetches the page, picks a table by position or CSS/XPath selector,
converts formatted numbers, renames columns and optionally plots or
regresses two of the resulting columns.

Usage:
    python scripts/scrape_static_table.py --url https://example.org/results \
        --selector "table.wikitable" --rename "Votes=votes" --output results.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import requests

# Add project path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from election_scraper.analysis import fit_regression, plot_columns, plot_regression
from election_scraper.config import StaticTableConfig, load_config, setup_logging
from election_scraper.tables import TableNotFoundError, TableScraper


def parse_renames(pairs: List[str]) -> Dict[str, str]:
    """Turn OLD=NEW arguments into a rename mapping."""
    column_map = {}
    for pair in pairs:
        old, sep, new = pair.partition('=')
        if not sep or not old or not new:
            raise ValueError(f"Rename must look like OLD=NEW, got {pair!r}")
        column_map[old] = new
    return column_map


def build_config(args: argparse.Namespace) -> StaticTableConfig:
    """Merge a JSON config file with command line overrides."""
    config = load_config(args.config, StaticTableConfig) if args.config else StaticTableConfig()

    if args.url:
        config.url = args.url
    if args.index is not None:
        config.index = args.index
    if args.selector:
        config.selector = args.selector
    if args.numeric:
        config.numeric_columns = args.numeric
    if args.rename:
        config.column_map.update(parse_renames(args.rename))

    if not config.url:
        raise ValueError("A page URL is required (--url or config file)")
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract a table from a static web page")
    parser.add_argument("--config", type=Path, help="JSON file with StaticTableConfig fields")
    parser.add_argument("--url", help="Page containing the table")
    parser.add_argument("--index", type=int, help="Position of the table among matches")
    parser.add_argument("--selector", help="CSS or XPath selector for the table")
    parser.add_argument("--numeric", nargs="+", help="Columns to convert to numbers")
    parser.add_argument("--rename", nargs="+", default=[], help="Column renames as OLD=NEW")
    parser.add_argument("--output", type=Path, help="CSV file to write")
    parser.add_argument("--plot", nargs=2, metavar=("X", "Y"), help="Bar chart of Y by X")
    parser.add_argument("--regress", nargs=2, metavar=("X", "Y"), help="Regress Y on X")
    parser.add_argument("--figure", type=Path, help="Save the plot here instead of showing it")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=not args.quiet, log_dir=None)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
        scraper = TableScraper.from_config(config)
        table = scraper.extract_table(
            config.url,
            index=config.index,
            selector=config.selector,
            numeric_columns=config.numeric_columns,
            column_map=config.column_map
        )
    except (ValueError, TableNotFoundError, requests.exceptions.RequestException) as e:
        logger.error(f"Table extraction failed: {e}")
        return 1

    print(table.head(20).to_string())

    if args.output:
        table.to_csv(args.output, index=False)
        logger.info(f"Saved {len(table)} rows to {args.output}")

    try:
        if args.regress:
            print()
            print(fit_regression(table, *args.regress).summary())

        if args.plot:
            if args.regress and tuple(args.plot) == tuple(args.regress):
                plot_regression(table, *args.plot)
            else:
                plot_columns(table, *args.plot)
            if args.figure:
                plt.savefig(args.figure)
                logger.info(f"Saved figure to {args.figure}")
            else:
                plt.show()
    except ValueError as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
