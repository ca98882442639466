from contextlib import asynccontextmanager

import pytest
import requests
from bs4 import BeautifulSoup

from errors import NavigationError


class FakeSession:
    """
    Stands in for browser.BrowserSession. Pages are canned HTML keyed by URL;
    a URL mapped to an exception raises it on navigate, an unknown URL behaves
    like a 404. `on_click(session, selector, index)` returns the HTML shown
    after a click.
    """

    def __init__(self, pages, on_click=None):
        self.pages = pages
        self.on_click = on_click
        self.url = None
        self.html = ""
        self.clicks = []
        self.waits = []
        self.closed = False

    async def navigate(self, url):
        page = self.pages.get(url)
        if page is None:
            raise NavigationError(url, "HTTP 404")
        if isinstance(page, Exception):
            raise page
        self.url = url
        self.html = page

    async def content(self):
        return self.html

    async def count(self, selector):
        return len(BeautifulSoup(self.html, "lxml").select(selector))

    async def click(self, selector, index=0):
        self.clicks.append((selector, index))
        if self.on_click is not None:
            self.html = self.on_click(self, selector, index)

    async def wait(self, ms):
        self.waits.append(ms)

    async def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, pages, on_click=None):
        self.pages = pages
        self.on_click = on_click
        self.sessions = []

    @asynccontextmanager
    async def session(self):
        session = FakeSession(self.pages, self.on_click)
        self.sessions.append(session)
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def make_factory():
    return FakeFactory


class MockResponse:
    def __init__(self, text, status_code=200, reason="OK"):
        self.text = text
        self.status_code = status_code
        self.reason = reason

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} {self.reason}", response=self)


@pytest.fixture
def mock_response():
    return MockResponse


# --- Canned vendor pages ---

NUTRITION_TABLE_HTML = """
<html><body>
<table id="nutrition-facts">
  <thead><tr><th>Nutrition Facts</th><th>Small</th><th>Regular</th></tr></thead>
  <tbody>
    <tr><td>Calories / kcal:</td><td>450</td><td>600</td></tr>
    <tr><td>Total Fat / g:</td><td>12</td><td>18</td></tr>
    <tr><td>Protein / g:</td><td>30</td></tr>
    <tr><td>Sodium / mg:</td><td></td><td>900</td></tr>
  </tbody>
</table>
</body></html>
"""


def serving_panel_html(calories, fat, protein):
    return f"""
<html><body>
<div class="bg-beige"><h2 class="text-heading-sm">Thai Beef Bowl</h2></div>
<div class="page-menu-swiper"><div class="swiper-wrapper">
  <div class="swiper-slide"><button> Small </button></div>
  <div class="swiper-slide"><button>Regular</button></div>
</div></div>
<div class="facts-container"><div class="facts-container">
  <p><span>Calories</span> {calories}</p>
  <p><span class="font-bold">Fat</span> {fat}</p>
  <p><span class="font-bold">Protein</span> {protein}</p>
</div></div>
</body></html>
"""


LABELED_LIST_HTML = """
<html><body>
<h1 data-recipe-title> Chicken Pesto Penne </h1>
<div data-test-id="recipe-nutrition">
  <div class="web-dxsv06"><small>Calories</small><span>620 kcal</span></div>
  <div class="web-dxsv06"><small>Total Fat</small><span> 28 G </span></div>
  <div class="web-dxsv06"><small>Sodium</small></div>
</div>
</body></html>
"""


@pytest.fixture
def nutrition_table_html():
    return NUTRITION_TABLE_HTML


@pytest.fixture
def panel_html():
    return serving_panel_html


@pytest.fixture
def labeled_list_html():
    return LABELED_LIST_HTML
