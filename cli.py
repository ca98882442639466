# cli.py
"""
Command-line entry point.

    python cli.py --vendor weCookMeals 2024-08-05 2024-08-12
    python cli.py --vendor factorMeals --month 2024-08
    python cli.py                       # prompts for vendor and date
"""
import sys
import asyncio
import argparse
import logging

from browser import BrowserConfig, BrowserFactory
from dates import parse_month
from errors import InvalidInputError
from menu_selectors import VENDORS, DATA_DIR, DISCLAIMER, RunSettings, MAX_CONCURRENT_PAGES, EXTRACTION_RETRIES
from pipeline import run
from storage import JsonFileSink

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Scrape weekly meal-kit menus and their nutrition facts.")
    parser.add_argument("dates", nargs="*", help="Menu dates (YYYY-MM-DD) or periods (YYYY-Www)")
    parser.add_argument("--vendor", choices=list(VENDORS), help="Vendor to scrape (prompted if omitted)")
    parser.add_argument("--month", help="Scrape every week of a month (YYYY-MM)")
    parser.add_argument("--output-dir", default=DATA_DIR, help="Directory for the JSON output")
    parser.add_argument("--max-concurrency", type=int, default=MAX_CONCURRENT_PAGES,
                        help="Meal pages scraped at the same time")
    parser.add_argument("--retries", type=int, default=EXTRACTION_RETRIES,
                        help="Extra attempts before a meal is recorded as null")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def prompt_vendor():
    keys = list(VENDORS)
    print("Select a vendor:")
    for number, key in enumerate(keys, start=1):
        print(f"  {number}. {VENDORS[key]['name']} ({key})")
    choice = input("Vendor number: ").strip()
    if not choice.isdigit() or not 1 <= int(choice) <= len(keys):
        raise InvalidInputError(f"Invalid vendor choice: {choice!r}")
    return keys[int(choice) - 1]


def prompt_dates():
    answer = input("Enter a menu date (YYYY-MM-DD), or leave blank for every week of this month: ").strip()
    return [answer] if answer else []


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.month and args.dates:
        parser.error("give either explicit dates or --month, not both")
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
    logger.info(DISCLAIMER)

    try:
        vendor_key = args.vendor or prompt_vendor()
        year = month = None
        dates = args.dates
        if args.month:
            year, month = parse_month(args.month)
        elif not dates and sys.stdin.isatty():
            dates = prompt_dates()

        settings = RunSettings(max_concurrency=args.max_concurrency, retries=args.retries)
        factory = BrowserFactory(BrowserConfig(headless=not args.headful))
        summary = asyncio.run(run(vendor_key, dates=dates, year=year, month=month,
                                  factory=factory, sink=JsonFileSink(args.output_dir), settings=settings))
    except InvalidInputError as e:
        logger.error(str(e))
        return 1

    for path in summary["written"]:
        logger.info(f"Wrote {path}")
    if summary["failed"]:
        logger.warning(f"Weeks without output: {', '.join(summary['failed'])}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
