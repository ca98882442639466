# menu_selectors.py
"""
menu_selectors.py

This module stores the vendor registry, CSS selectors and tuning constants for
scraping weekly meal-kit menus and their nutrition facts.

Nutrition data on these sites is only present in the rendered DOM (and in some
cases only after clicking serving-size toggles or "load more" buttons), so every
selector below is evaluated against HTML captured from a real browser session.

***************************************************************************
* CRITICAL NOTE: Vendor markup (especially generated class names such as  *
* 'web-dxsv06' or 'hFDzbe') changes without notice. If a vendor redesigns *
* its pages, this module WILL require updates. Always verify with browser *
* developer tools.                                                        *
***************************************************************************
"""
from dataclasses import dataclass

# General Disclaimer
DISCLAIMER = "Important Note: Web scraping can violate the Terms of Service (ToS) of websites, including meal-kit vendors. This tool is developed for educational and personal nutrition-tracking purposes only. Always review and respect the ToS of any website before attempting to scrape it. Proceed responsibly and at your own risk."

# --- Protocol identifiers ---
# Each vendor is scraped with exactly one protocol. The protocol decides how
# meal links are discovered and how a meal page is turned into a record.
STATIC_TABLE = "static_table"          # sitemap discovery + multi-serving <table>
INTERACTIVE_TABS = "interactive_tabs"  # date-keyed listing + serving-size toggles
PAGINATED_CARDS = "paginated_cards"    # period-keyed "load more" listing + label list

VENDORS = {
    "weCookMeals": {
        "name": "We-Cook",
        "protocol": INTERACTIVE_TABS,
        "sitemap_url": "https://www.wecookmeals.ca/sitemap.xml",
        "week_menu_url": "https://www.wecookmeals.ca/en/week-menu",
        "menu_path_segment": "en/week-menu/",
    },
    "weCookMealsLegacy": {
        "name": "We-Cook (legacy table)",
        "protocol": STATIC_TABLE,
        "sitemap_url": "https://www.wecookmeals.ca/sitemap.xml",
        "week_menu_url": "https://www.wecookmeals.ca/en/week-menu",
        "menu_path_segment": "en/week-menu/",
    },
    "factorMeals": {
        "name": "Factor Meals",
        "protocol": PAGINATED_CARDS,
        "sitemap_url": "https://www.factormeals.ca/sitemap.xml",
        "week_menu_url": "https://www.factormeals.ca/weekly-menu",
        "menu_path_segment": "weekly-menu/",
    },
}

# --- CSS selectors, keyed by protocol ---
SELECTORS = {
    STATIC_TABLE: {
        # | Nutrition Facts | Serving Size: Small | Serving Size: Regular |
        # | Calories / kcal:| 100                 | 200                   |
        "table": "#nutrition-facts",
        "header_cells": "#nutrition-facts thead th",
        "body_rows": "#nutrition-facts tbody tr",
    },
    INTERACTIVE_TABS: {
        "listing_links": "a.h-full",
        "serving_toggles": "div.page-menu-swiper div.swiper-wrapper div.swiper-slide button",
        "title": "div.bg-beige h2.text-heading-sm",
        "facts_spans": "div.facts-container div.facts-container span",
        "facts_bold_labels": "div.facts-container div.facts-container span.font-bold",
        "calories_label": "Calories",
    },
    PAGINATED_CARDS: {
        "load_more": "div.web-riauoa button.sc-e95c4911-0.hFDzbe",
        "card_links": "div[data-recipe-card] a",
        "title": "h1[data-recipe-title]",
        "nutrition_container": "div[data-test-id='recipe-nutrition']",
        "nutrition_item": ".web-dxsv06",
        "nutrition_item_label": "small",
        "nutrition_item_value": "span",
        "period_query_param": "week",
        "default_serving": "regular",
    },
}

# --- Configuration ---
SETTLE_DELAY_MS = 1000           # wait after each simulated click
NAVIGATION_TIMEOUT_MS = 60000
WAIT_UNTIL = "networkidle"
LOAD_MORE_MAX_CLICKS = 50
LOAD_MORE_DEADLINE_SECONDS = 120
MAX_CONCURRENT_PAGES = 4
EXTRACTION_RETRIES = 0           # extra attempts before a meal is recorded as null
REQUEST_TIMEOUT_SECONDS = 15
DATA_DIR = "data"
VENDOR_TIMEZONE = "America/Toronto"

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/109.0.0.0 Safari/537.36",
]


@dataclass
class RunSettings:
    """Effective tuning for one run; defaults come from the constants above."""
    settle_delay_ms: int = SETTLE_DELAY_MS
    load_more_max_clicks: int = LOAD_MORE_MAX_CLICKS
    load_more_deadline_seconds: float = LOAD_MORE_DEADLINE_SECONDS
    max_concurrency: int = MAX_CONCURRENT_PAGES
    retries: int = EXTRACTION_RETRIES
