# errors.py
"""Exceptions raised while discovering and scraping weekly menus."""


class ScraperError(Exception):
    """Base class for every error raised by this package."""


class FetchError(ScraperError):
    """The sitemap document could not be retrieved."""


class NavigationError(ScraperError):
    """A page could not be reached, returned a non-2xx status, timed out,
    or could not be interacted with."""

    def __init__(self, url, reason):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class MissingElementError(ScraperError):
    """A DOM element required to build a record is absent."""


class InvalidInputError(ScraperError):
    """A date, period key or vendor choice was rejected."""
