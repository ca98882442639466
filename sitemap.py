# sitemap.py
import re
import random
import logging
import requests

from errors import FetchError
from menu_selectors import USER_AGENTS, REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

LOC_PATTERN = re.compile(r'<loc>(.*?)</loc>', re.DOTALL)

def extract_loc_urls(document):
    """Returns every URL wrapped in <loc> tags, in document order."""
    if not document:
        return []
    return [url.strip() for url in LOC_PATTERN.findall(document)]

def fetch_sitemap_urls(sitemap_url):
    """
    Downloads a sitemap and returns all of its <loc> URLs.
    Raises FetchError when the sitemap cannot be retrieved.
    """
    headers = {"User-Agent": random.choice(USER_AGENTS)}
    logger.info(f"Fetching sitemap: {sitemap_url}")
    try:
        response = requests.get(sitemap_url, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        logger.error(f"HTTP error for {sitemap_url}: {e.response.status_code} {e.response.reason}")
        raise FetchError(f"Sitemap {sitemap_url} returned HTTP {e.response.status_code}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"Request error for {sitemap_url}: {e}")
        raise FetchError(f"Could not fetch sitemap {sitemap_url}: {e}") from e

    urls = extract_loc_urls(response.text)
    logger.info(f"Sitemap {sitemap_url} listed {len(urls)} URLs")
    return urls

def filter_menu_urls(urls, path_segment="en/week-menu/"):
    """Keeps only URLs containing the vendor's week-menu path segment, in order."""
    return [url for url in urls if path_segment in url]
