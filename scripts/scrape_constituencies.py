#!/usr/bin/env python3
"""
Look up election results for a list of constituencies through a search form.

This script:
1. Collects constituency names from the command line or a static table
2. Opens one Chrome session and searches each constituency in turn
3. Waits a fixed delay between searches to go easy on the server
4. Combines every constituency's candidates into a single CSV
5. Prints seats and votes per party

Usage:
    python scripts/scrape_constituencies.py --config lookup.json \
        --constituency Varanasi --constituency Amethi --output results.csv
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from election_scraper.analysis import party_summary
from election_scraper.browser import ConstituencyLookup, browser_session, scrape_constituencies
from election_scraper.config import LookupConfig, load_config, setup_logging
from election_scraper.tables import TableScraper, scrape_constituency_names


def collect_constituencies(args: argparse.Namespace) -> List[str]:
    """Names given on the command line, followed by any scraped from a names table."""
    names = list(args.constituency or [])

    if args.names_url:
        column = int(args.names_column) if args.names_column.isdigit() else args.names_column
        scraped = scrape_constituency_names(
            TableScraper(),
            args.names_url,
            column,
            index=args.names_index,
            selector=args.names_selector
        )
        names.extend(name for name in scraped if name not in names)

    if args.limit:
        names = names[:args.limit]
    return names


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape constituency results through a search form")
    parser.add_argument("--config", type=Path, help="JSON file with LookupConfig fields")
    parser.add_argument("--constituency", action="append", help="Constituency to look up (repeatable)")
    parser.add_argument("--names-url", help="Page with a table of constituency names")
    parser.add_argument("--names-column", default="0", help="Column name or position holding the names")
    parser.add_argument("--names-index", type=int, default=0, help="Position of the names table")
    parser.add_argument("--names-selector", help="CSS or XPath selector for the names table")
    parser.add_argument("--limit", type=int, help="Only look up the first N constituencies")
    parser.add_argument("--delay", type=float, help="Seconds to wait between lookups")
    parser.add_argument("--continue-on-error", action="store_true",
                        help="Skip constituencies that fail instead of stopping")
    parser.add_argument("--show-browser", action="store_true", help="Run Chrome with a visible window")
    parser.add_argument("--output", type=Path, default=Path("constituency_results.csv"),
                        help="CSV file to write")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=not args.quiet)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config, LookupConfig) if args.config else LookupConfig()
        if not config.url:
            raise ValueError("The lookup config must define a url")

        constituencies = collect_constituencies(args)
        if not constituencies:
            raise ValueError("No constituencies to look up")

        logger.info(f"Looking up {len(constituencies)} constituencies")

        with browser_session(headless=not args.show_browser) as driver:
            lookup = ConstituencyLookup(driver, config)
            results = scrape_constituencies(
                lookup,
                constituencies,
                delay=args.delay,
                continue_on_error=args.continue_on_error
            )

    except KeyboardInterrupt:
        logger.info("Scraping interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Scraping failed: {e}")
        return 1

    results.to_csv(args.output, index=False)
    logger.info(f"Saved {len(results)} candidate rows to {args.output}")

    if not results.empty:
        print(party_summary(results).to_string())

    return 0


if __name__ == "__main__":
    sys.exit(main())
