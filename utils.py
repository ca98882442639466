# utils.py
import re
import logging
from urllib.parse import urlparse, parse_qs
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

UNIT_PATTERN = re.compile(r'\s*/\s*(\w+)\s*:?')

def clean_text(text):
    """
    Removes HTML tags and normalizes whitespace.
    """
    if text is None:
        return None
    soup = BeautifulSoup(str(text), "lxml") # Ensure text is treated as string for BS
    text_content = soup.get_text(separator=' ', strip=True)
    return ' '.join(text_content.split())

def remove_whitespace(text):
    """Drops every whitespace character, e.g. '12 g' -> '12g'."""
    if text is None:
        return None
    return re.sub(r'\s+', '', str(text))

# --- Nutrient label normalization ---
# A raw label such as "Total Fat / g:" goes through three named steps:
#   strip_unit          -> ("Total Fat", "g")
#   collapse_whitespace -> "total_fat"
#   trim_separators     -> strips stray '_' and ':' from both ends

def strip_unit(label):
    """
    Removes a "/unit" suffix (optionally followed by a colon) from a label.
    Returns (label_without_unit, unit); unit is '' when there is none.
    """
    if not label:
        return '', ''
    match = UNIT_PATTERN.search(label)
    if not match:
        return label, ''
    return label[:match.start()] + label[match.end():], match.group(1)

def collapse_whitespace(text):
    """Lowercases and joins whitespace-separated words with underscores."""
    if not text:
        return ''
    return re.sub(r'\s+', '_', text.strip().lower())

def trim_separators(text):
    if not text:
        return ''
    return text.strip('_:')

def normalize_nutrient_label(raw_label):
    """
    Turns a raw nutrition label into (nutrient_key, unit).

    >>> normalize_nutrient_label("Calories / kcal:")
    ('calories', 'kcal')
    >>> normalize_nutrient_label("total_fat")
    ('total_fat', '')
    """
    label, unit = strip_unit(clean_text(raw_label) or '')
    key = trim_separators(collapse_whitespace(label))
    return key, unit.lower()

# --- URL helpers ---

def last_path_segment(url):
    path = urlparse(url).path.rstrip('/')
    return path.split('/')[-1] if path else ''

def humanize_slug(words):
    """Joins slug words with spaces and capitalizes the first letter only."""
    text = ' '.join(w for w in words if w)
    return text[:1].upper() + text[1:]

def parse_meal_slug(url):
    """
    Derives (id, name) from a meal URL such as
    ".../en/week-menu/2024-08-05/123-thai-beef-bowl" -> ("123", "Thai beef bowl").
    A slug without a numeric prefix is used whole as the id.
    """
    slug = last_path_segment(url)
    tokens = slug.split('-')
    if tokens and tokens[0].isdigit():
        return tokens[0], humanize_slug(tokens[1:])
    return slug, humanize_slug(tokens)

def parse_trailing_id(url):
    """Returns the last hyphen-delimited token of a URL, ignoring the query string."""
    return url.split('?')[0].rstrip('/').split('-')[-1]

def parse_period_param(url, param="week"):
    values = parse_qs(urlparse(url).query).get(param)
    return values[0] if values else ''

def parse_date_segment(url):
    """Returns the first 'YYYY-MM-DD' path segment of a URL, or ''."""
    for segment in urlparse(url).path.split('/'):
        if re.fullmatch(r'\d{4}-\d{2}-\d{2}', segment):
            return segment
    return ''

def dedupe(items):
    """Removes duplicates while keeping first-seen order."""
    return list(dict.fromkeys(items))
