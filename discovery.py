# discovery.py
"""
Finding the meal detail pages that make up one weekly menu.

Three strategies, one per protocol:
  * sitemap:   filter the vendor sitemap down to one week's meal URLs
  * date:      read the meal-card anchors of '{week_menu_url}/{YYYY-MM-DD}'
  * period:    open '{week_menu_url}/{YYYY-Www}', click "load more" until it
               disappears, then read the (duplicated) recipe-card anchors
"""
import time
import asyncio
import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from errors import NavigationError
from menu_selectors import SELECTORS, INTERACTIVE_TABS, PAGINATED_CARDS
from sitemap import fetch_sitemap_urls, filter_menu_urls
from utils import dedupe

logger = logging.getLogger(__name__)


def collect_links(html, selector, base_url, unique=False):
    """Returns the absolute hrefs of every anchor matched by `selector`."""
    soup = BeautifulSoup(html, "lxml")
    hrefs = [urljoin(base_url, a["href"]) for a in soup.select(selector) if a.get("href")]
    return dedupe(hrefs) if unique else hrefs


async def load_sitemap_menu_urls(vendor):
    """Every week-menu URL listed in the vendor sitemap. FetchError is propagated."""
    urls = await asyncio.to_thread(fetch_sitemap_urls, vendor["sitemap_url"])
    return filter_menu_urls(urls, vendor["menu_path_segment"])


async def discover_links_from_sitemap(date, vendor, factory=None, settings=None, menu_urls=None):
    """
    Meal URLs for one week taken straight from the sitemap. Pass `menu_urls`
    to reuse an already downloaded sitemap.
    FetchError is propagated to the caller.
    """
    if menu_urls is None:
        menu_urls = await load_sitemap_menu_urls(vendor)
    links = [url for url in menu_urls if f"/{date}/" in url]
    logger.info(f"Sitemap lists {len(links)} meal pages for {date} ({len(menu_urls)} week-menu URLs total)")
    return links


def cached_sitemap_discovery():
    """
    discover_links_from_sitemap that downloads each vendor sitemap once and
    reuses it for every later date. Failed downloads are not cached.
    """
    menu_urls_by_sitemap = {}

    async def discover(date, vendor, factory=None, settings=None):
        sitemap_url = vendor["sitemap_url"]
        if sitemap_url not in menu_urls_by_sitemap:
            menu_urls_by_sitemap[sitemap_url] = await load_sitemap_menu_urls(vendor)
        return await discover_links_from_sitemap(date, vendor, factory, settings,
                                                 menu_urls=menu_urls_by_sitemap[sitemap_url])

    return discover


async def discover_links_by_date(date, vendor, factory, settings=None):
    """Meal-card links on the date-keyed listing page. Returns [] on failure."""
    url = f"{vendor['week_menu_url']}/{date}"
    selector = SELECTORS[INTERACTIVE_TABS]["listing_links"]
    try:
        async with factory.session() as session:
            await session.navigate(url)
            html = await session.content()
    except (NavigationError, PlaywrightError) as e:
        logger.error(f"Error scraping menu links from {url}: {e}")
        return []
    links = collect_links(html, selector, url)
    logger.info(f"Found {len(links)} meal links on {url}")
    return links


async def load_all_cards(session, url, settings):
    """
    Clicks the "load more" control until it is gone. Raises NavigationError
    when it is still present after `load_more_max_clicks` clicks or after the
    deadline.
    """
    selector = SELECTORS[PAGINATED_CARDS]["load_more"]
    deadline = time.monotonic() + settings.load_more_deadline_seconds
    clicks = 0
    while await session.count(selector) > 0:
        if clicks >= settings.load_more_max_clicks:
            raise NavigationError(url, f"load-more control still present after {clicks} clicks")
        if time.monotonic() > deadline:
            raise NavigationError(url, f"load-more deadline of {settings.load_more_deadline_seconds}s exceeded")
        await session.click(selector)
        clicks += 1
        await session.wait(settings.settle_delay_ms)
    logger.debug(f"Load-more clicked {clicks} times on {url}")
    return clicks


async def discover_links_by_period(period, vendor, factory, settings):
    """Unique recipe-card links on the period-keyed listing page. Returns [] on failure."""
    url = f"{vendor['week_menu_url']}/{period}"
    selector = SELECTORS[PAGINATED_CARDS]["card_links"]
    try:
        async with factory.session() as session:
            await session.navigate(url)
            await load_all_cards(session, url, settings)
            html = await session.content()
    except (NavigationError, PlaywrightError) as e:
        logger.error(f"Error scraping menu links from {url}: {e}")
        return []
    links = collect_links(html, selector, url, unique=True)
    logger.info(f"Found {len(links)} unique recipe links on {url}")
    return links
