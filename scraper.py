# scraper.py
import logging
from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError

from errors import NavigationError, MissingElementError
from menu_selectors import SELECTORS, STATIC_TABLE, INTERACTIVE_TABS, PAGINATED_CARDS, RunSettings
from utils import (clean_text, remove_whitespace, normalize_nutrient_label, collapse_whitespace,
                   trim_separators, parse_meal_slug, parse_trailing_id, parse_period_param,
                   parse_date_segment)

logger = logging.getLogger(__name__)

SCRAPE_ERRORS = (NavigationError, MissingElementError, PlaywrightError)


def build_record(meal_id, name, url, period_key, servings):
    return {
        "id": meal_id,
        "name": name,
        "url": url,
        "periodKey": period_key,
        "servings": servings,
    }


def sibling_text(element):
    """Text of the node right after `element` (tag or bare text node), stripped."""
    sibling = element.next_sibling
    if sibling is None:
        return None
    text = sibling.get_text() if isinstance(sibling, Tag) else str(sibling)
    return text.strip() or None


# --- DOM parsers (pure) ---

def parse_nutrition_table(soup):
    """
    Reads a multi-serving nutrition table:

    | Nutrition Facts  | Serving Size: Small | Serving Size: Regular |
    |------------------|---------------------|-----------------------|
    | Calories / kcal: | 100                 | 200                   |
    | Fat / g:         | 10                  | 20                    |

    Returns {serving_label: {nutrient_key: value+unit}}. Every header serving
    gets an entry; missing or empty cells only drop that one value.
    """
    selectors = SELECTORS[STATIC_TABLE]
    if soup.select_one(selectors["table"]) is None:
        raise MissingElementError(f"Nutrition table not found via: {selectors['table']}")

    header_cells = soup.select(selectors["header_cells"])[1:]
    serving_labels = [(clean_text(th.get_text()) or '').lower() for th in header_cells]
    servings = {label: {} for label in serving_labels}

    for row in soup.select(selectors["body_rows"]):
        cells = row.find_all("td")
        if not cells:
            continue
        nutrient, unit = normalize_nutrient_label(cells[0].get_text())
        if not nutrient:
            logger.debug(f"Skipping nutrition row without a label: {row}")
            continue
        for index, label in enumerate(serving_labels):
            if index + 1 >= len(cells):
                break
            value = clean_text(cells[index + 1].get_text())
            if value:
                servings[label][nutrient] = f"{value}{unit}"
    return servings


def parse_serving_panel(soup):
    """Nutrients shown for the currently selected serving toggle."""
    selectors = SELECTORS[INTERACTIVE_TABS]
    nutrients = {}

    calories_label = next(
        (span for span in soup.select(selectors["facts_spans"]) if selectors["calories_label"] in span.get_text()),
        None,
    )
    if calories_label is not None:
        calories = sibling_text(calories_label)
        if calories:
            nutrients["calories"] = calories
    else:
        logger.debug("Calories label not found in facts panel")

    for label in soup.select(selectors["facts_bold_labels"]):
        nutrient, _ = normalize_nutrient_label(label.get_text())
        value = sibling_text(label)
        if nutrient and value:
            nutrients[nutrient] = remove_whitespace(value).lower()
    return nutrients


def parse_labeled_list(soup):
    """Returns (title or None, {nutrient_key: value}) for a single-serving label list."""
    selectors = SELECTORS[PAGINATED_CARDS]
    title = soup.select_one(selectors["title"])
    name = clean_text(title.get_text()) if title else None

    container = soup.select_one(selectors["nutrition_container"])
    if container is None:
        raise MissingElementError(f"Nutrition container not found via: {selectors['nutrition_container']}")

    facts = {}
    for item in container.select(selectors["nutrition_item"]):
        label = item.select_one(selectors["nutrition_item_label"])
        value = item.select_one(selectors["nutrition_item_value"])
        if not label or not value:
            continue
        key = trim_separators(collapse_whitespace(clean_text(label.get_text())))
        if key:
            facts[key] = (clean_text(value.get_text()) or '').lower()
    return name, facts


# --- Extraction protocols ---
# Each one owns a browser session for the whole call and returns None instead
# of raising when the page cannot be scraped.

async def scrape_static_table(url, factory, settings=None, period_key=None):
    step = "navigate"
    try:
        async with factory.session() as session:
            await session.navigate(url)
            step = "read page"
            html = await session.content()
        step = "parse nutrition table"
        servings = parse_nutrition_table(BeautifulSoup(html, "lxml"))
    except SCRAPE_ERRORS as e:
        logger.error(f"Error scraping {url} at step '{step}': {e}")
        return None

    meal_id, name = parse_meal_slug(url)
    return build_record(meal_id, name, url, period_key or parse_date_segment(url), servings)


async def scrape_interactive_tabs(url, factory, settings=None, period_key=None):
    """
    Clicks every serving-size toggle in turn and reads the facts panel it
    reveals. Toggles are handled one at a time within the page.
    """
    settings = settings or RunSettings()
    selectors = SELECTORS[INTERACTIVE_TABS]
    toggle_selector = selectors["serving_toggles"]
    step = "navigate"
    try:
        async with factory.session() as session:
            await session.navigate(url)
            step = "find serving toggles"
            soup = BeautifulSoup(await session.content(), "lxml")
            toggles = soup.select(toggle_selector)
            if not toggles:
                raise MissingElementError(f"No serving toggles found via: {toggle_selector}")
            title = soup.select_one(selectors["title"])
            page_name = clean_text(title.get_text()) if title else None

            servings = {}
            for index, toggle in enumerate(toggles):
                step = f"serving toggle {index + 1}/{len(toggles)}"
                await session.click(toggle_selector, index)
                await session.wait(settings.settle_delay_ms)
                soup = BeautifulSoup(await session.content(), "lxml")
                label = (clean_text(toggle.get_text()) or f"serving_{index + 1}").lower()
                servings[label] = parse_serving_panel(soup)
    except SCRAPE_ERRORS as e:
        logger.error(f"Error scraping {url} at step '{step}': {e}")
        return None

    meal_id, slug_name = parse_meal_slug(url)
    return build_record(meal_id, page_name or slug_name, url, period_key or parse_date_segment(url), servings)


async def scrape_labeled_list(url, factory, settings=None, period_key=None):
    step = "navigate"
    try:
        async with factory.session() as session:
            await session.navigate(url)
            step = "read page"
            html = await session.content()
        step = "parse nutrition labels"
        page_name, facts = parse_labeled_list(BeautifulSoup(html, "lxml"))
    except SCRAPE_ERRORS as e:
        logger.error(f"Error scraping {url} at step '{step}': {e}")
        return None

    selectors = SELECTORS[PAGINATED_CARDS]
    _, slug_name = parse_meal_slug(url)
    return build_record(
        parse_trailing_id(url),
        page_name or slug_name,
        url,
        parse_period_param(url, selectors["period_query_param"]) or period_key or '',
        {selectors["default_serving"]: facts},
    )
