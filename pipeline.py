# pipeline.py
"""
Orchestration of one scrape run:

    select vendor -> resolve dates -> for each date (one at a time):
        discover meal links -> extract every meal (concurrently) ->
        assemble the week batch -> persist it

A failure while handling one date is logged and the run moves on to the next
date. Invalid vendor choices and an empty date set abort the run with
InvalidInputError.
"""
import asyncio
import logging
from collections import namedtuple
from enum import Enum

from browser import BrowserFactory
from dates import (closest_sunday, current_month, iso_week_key, is_valid_monday,
                   is_valid_period_key, mondays_of_month, parse_date, sundays_of_month)
from discovery import (cached_sitemap_discovery, discover_links_by_date, discover_links_by_period,
                       discover_links_from_sitemap)
from errors import InvalidInputError
from menu_selectors import VENDORS, STATIC_TABLE, INTERACTIVE_TABS, PAGINATED_CARDS, RunSettings
from scraper import scrape_interactive_tabs, scrape_labeled_list, scrape_static_table
from storage import JsonFileSink

logger = logging.getLogger(__name__)


class VendorProtocol(Enum):
    STATIC_TABLE = STATIC_TABLE
    INTERACTIVE_TABS = INTERACTIVE_TABS
    PAGINATED_CARDS = PAGINATED_CARDS


# key_kind is "date" ('YYYY-MM-DD' Mondays) or "period" ('YYYY-Www' weeks)
ProtocolPlan = namedtuple("ProtocolPlan", ["discover", "extract", "key_kind"])

PLANS = {
    VendorProtocol.STATIC_TABLE: ProtocolPlan(discover_links_from_sitemap, scrape_static_table, "date"),
    VendorProtocol.INTERACTIVE_TABS: ProtocolPlan(discover_links_by_date, scrape_interactive_tabs, "date"),
    VendorProtocol.PAGINATED_CARDS: ProtocolPlan(discover_links_by_period, scrape_labeled_list, "period"),
}


def select_vendor(vendor_key):
    """Returns (vendor_config, VendorProtocol) or raises InvalidInputError."""
    vendor = VENDORS.get(vendor_key)
    if vendor is None:
        raise InvalidInputError(f"Unknown vendor {vendor_key!r}. Choose one of: {', '.join(VENDORS)}")
    return vendor, VendorProtocol(vendor["protocol"])


def _resolve_period_key(value):
    if is_valid_period_key(value):
        return value
    if parse_date(value) is not None:
        return iso_week_key(closest_sunday(value))
    return None


def resolve_run_keys(protocol, dates=None, year=None, month=None):
    """
    Turns explicit dates, or a month batch, into the ordered list of keys to
    scrape. Invalid entries are dropped with a warning; an empty result raises
    InvalidInputError.
    """
    key_kind = PLANS[protocol].key_kind
    keys = []
    if dates:
        for value in dates:
            if key_kind == "date":
                key = value if is_valid_monday(value) else None
                expected = "a Monday in YYYY-MM-DD format"
            else:
                key = _resolve_period_key(value)
                expected = "YYYY-Www or a YYYY-MM-DD date"
            if key is None:
                logger.warning(f"Skipping invalid date {value!r}: expected {expected}")
                continue
            keys.append(key)
    else:
        if year is None or month is None:
            year, month = current_month()
        if key_kind == "date":
            keys = mondays_of_month(year, month)
        else:
            keys = [iso_week_key(sunday) for sunday in sundays_of_month(year, month)]

    if not keys:
        raise InvalidInputError("No valid dates to scrape")
    return keys


def output_directory(key_kind, key):
    """'YYYY-MM' for date keys, the period key itself for period keys."""
    return key[:7] if key_kind == "date" else key


def assemble_week_batch(key, records):
    """Failed extractions stay in place as None, so the count always matches."""
    records = list(records)
    return {
        "date": key,
        "numberOfWeekMenus": len(records),
        "weekMenus": records,
    }


async def extract_with_retries(url, extract, factory, settings, period_key):
    attempts = 1 + max(0, settings.retries)
    for attempt in range(1, attempts + 1):
        record = await extract(url, factory, settings, period_key=period_key)
        if record is not None:
            return record
        if attempt < attempts:
            logger.info(f"Retrying {url} (attempt {attempt + 1}/{attempts})")
    logger.warning(f"Could not scrape {url}; recording null")
    return None


async def extract_all(urls, extract, factory, settings, period_key=None):
    """
    Extracts every URL concurrently (at most `settings.max_concurrency` at a
    time) and waits for all of them. Results keep the order of `urls`.
    """
    semaphore = asyncio.Semaphore(max(1, settings.max_concurrency))

    async def bounded(url):
        async with semaphore:
            return await extract_with_retries(url, extract, factory, settings, period_key)

    results = await asyncio.gather(*(bounded(url) for url in urls), return_exceptions=True)
    records = []
    for url, result in zip(urls, results):
        if isinstance(result, Exception):
            logger.error(f"Unexpected error scraping {url}: {result!r}")
            records.append(None)
        elif isinstance(result, BaseException):
            raise result
        else:
            records.append(result)
    return records


def save_week_batch(sink, vendor_key, key_kind, batch):
    """
    Writes a week batch under '<vendor>/<output dir>/<key>.json' and returns
    the path. A week without any discovered meal is not written; returns None.
    """
    key = batch["date"]
    if batch["numberOfWeekMenus"] == 0:
        logger.warning(f"[{vendor_key}] No meals found for {key}; nothing saved")
        return None
    return sink.write([vendor_key, output_directory(key_kind, key)], f"{key}.json", batch)


async def scrape_week(vendor_key, key, factory=None, settings=None, sink=None, discover=None):
    """
    Discovers, extracts and assembles one week. Persists it when a sink is
    given and the week has meals. `discover` overrides the vendor's default
    link discovery.
    """
    vendor, protocol = select_vendor(vendor_key)
    plan = PLANS[protocol]
    factory = factory or BrowserFactory()
    settings = settings or RunSettings()
    discover = discover or plan.discover

    logger.info(f"[{vendor['name']}] Discovering meals for {key}")
    links = await discover(key, vendor, factory, settings)
    logger.info(f"[{vendor['name']}] Scraping {len(links)} meals for {key}")
    records = await extract_all(links, plan.extract, factory, settings, period_key=key)
    batch = assemble_week_batch(key, records)

    if sink is not None:
        batch_path = save_week_batch(sink, vendor_key, plan.key_kind, batch)
        if batch_path is not None:
            logger.info(f"[{vendor['name']}] {key}: {len(records) - records.count(None)}/{len(records)} meals saved to {batch_path}")
    return batch


async def scrape_meal(vendor_key, url, factory=None, settings=None):
    """Runs the vendor's extraction protocol on a single meal URL."""
    _, protocol = select_vendor(vendor_key)
    return await PLANS[protocol].extract(url, factory or BrowserFactory(), settings or RunSettings())


async def run(vendor_key, dates=None, year=None, month=None, factory=None, sink=None, settings=None):
    """
    Scrapes every resolved date sequentially. Returns a summary dict with the
    written file paths and the keys that failed.
    """
    vendor, protocol = select_vendor(vendor_key)
    keys = resolve_run_keys(protocol, dates=dates, year=year, month=month)
    factory = factory or BrowserFactory()
    sink = sink or JsonFileSink()
    settings = settings or RunSettings()
    # one sitemap download serves every date of the run
    discover = cached_sitemap_discovery() if protocol is VendorProtocol.STATIC_TABLE else None

    logger.info(f"[{vendor['name']}] Scraping {len(keys)} week(s): {', '.join(keys)}")
    written, failed = [], []
    for key in keys:
        try:
            batch = await scrape_week(vendor_key, key, factory=factory, settings=settings, discover=discover)
            path = save_week_batch(sink, vendor_key, PLANS[protocol].key_kind, batch)
            if path is None:
                failed.append(key)
                continue
            written.append(str(path))
        except Exception as e:
            logger.exception(f"[{vendor['name']}] Failed to scrape {key}: {e}")
            failed.append(key)

    logger.info(f"[{vendor['name']}] Done: {len(written)} week(s) saved, {len(failed)} failed")
    return {"vendor": vendor_key, "status": "done", "written": written, "failed": failed}
