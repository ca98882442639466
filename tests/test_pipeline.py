import asyncio
import json

import pytest
import requests

import sitemap
from errors import InvalidInputError, NavigationError
from menu_selectors import RunSettings
from pipeline import (VendorProtocol, assemble_week_batch, extract_all, output_directory, resolve_run_keys, run,
                      scrape_meal, scrape_week, select_vendor)
from storage import JsonFileSink

SITEMAP_XML = """<urlset>
  <url><loc>https://www.wecookmeals.ca/en/week-menu/2024-08-05/455-broken-bowl</loc></url>
  <url><loc>https://www.wecookmeals.ca/en/contact</loc></url>
  <url><loc>https://www.wecookmeals.ca/en/week-menu/2024-08-05/456-parmesan-meatballs</loc></url>
</urlset>"""


def test_select_vendor():
    vendor, protocol = select_vendor("factorMeals")
    assert vendor["name"] == "Factor Meals"
    assert protocol is VendorProtocol.PAGINATED_CARDS

    with pytest.raises(InvalidInputError):
        select_vendor("blueApron")


def test_resolve_run_keys_filters_invalid_dates():
    keys = resolve_run_keys(VendorProtocol.INTERACTIVE_TABS, dates=["2024-08-05", "2024-08-06", "soon", "2024-08-12"])

    assert keys == ["2024-08-05", "2024-08-12"]


def test_resolve_run_keys_with_no_valid_dates():
    with pytest.raises(InvalidInputError):
        resolve_run_keys(VendorProtocol.STATIC_TABLE, dates=["2024-08-06"])


def test_resolve_run_keys_for_periods():
    keys = resolve_run_keys(VendorProtocol.PAGINATED_CARDS, dates=["2024-08-07", "2024-W33", "W33"])

    assert keys == ["2024-W32", "2024-W33"]


def test_resolve_run_keys_month_batches():
    assert resolve_run_keys(VendorProtocol.INTERACTIVE_TABS, year=2024, month=8) == [
        "2024-08-05", "2024-08-12", "2024-08-19", "2024-08-26",
    ]
    assert resolve_run_keys(VendorProtocol.PAGINATED_CARDS, year=2024, month=9) == [
        "2024-W36", "2024-W37", "2024-W38", "2024-W39", "2024-W40",
    ]


def test_output_directory():
    assert output_directory("date", "2024-08-05") == "2024-08"
    assert output_directory("period", "2024-W32") == "2024-W32"


def test_assemble_week_batch_counts_null_entries():
    record = {"id": "1"}
    batch = assemble_week_batch("2024-08-05", [None, record, None])

    assert batch == {"date": "2024-08-05", "numberOfWeekMenus": 3, "weekMenus": [None, record, None]}


@pytest.mark.asyncio
async def test_extract_all_caps_concurrency_and_keeps_order():
    running = 0
    peak = 0

    async def extract(url, factory, settings, period_key=None):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        if url == "boom":
            raise RuntimeError("unexpected")
        if url == "bad":
            return None
        return {"url": url}

    urls = ["a", "bad", "b", "boom", "c"]
    records = await extract_all(urls, extract, factory=None, settings=RunSettings(max_concurrency=2))

    assert records == [{"url": "a"}, None, {"url": "b"}, None, {"url": "c"}]
    assert peak == 2


@pytest.mark.asyncio
async def test_extract_all_retries_before_recording_null():
    attempts = []

    async def flaky(url, factory, settings, period_key=None):
        attempts.append(url)
        return {"url": url} if len(attempts) > 1 else None

    records = await extract_all(["a"], flaky, factory=None, settings=RunSettings(retries=1))

    assert records == [{"url": "a"}]
    assert attempts == ["a", "a"]


@pytest.mark.asyncio
async def test_run_end_to_end_keeps_failed_meals_in_place(monkeypatch, tmp_path, make_factory, mock_response,
                                                          nutrition_table_html):
    monkeypatch.setattr(sitemap.requests, "get", lambda url, headers, timeout: mock_response(SITEMAP_XML))
    broken = "https://www.wecookmeals.ca/en/week-menu/2024-08-05/455-broken-bowl"
    working = "https://www.wecookmeals.ca/en/week-menu/2024-08-05/456-parmesan-meatballs"
    factory = make_factory({broken: NavigationError(broken, "timeout"), working: nutrition_table_html})

    summary = await run("weCookMealsLegacy", dates=["2024-08-05"], factory=factory,
                        sink=JsonFileSink(tmp_path), settings=RunSettings(settle_delay_ms=0))

    output = tmp_path / "weCookMealsLegacy" / "2024-08" / "2024-08-05.json"
    assert summary == {"vendor": "weCookMealsLegacy", "status": "done", "written": [str(output)], "failed": []}
    batch = json.loads(output.read_text(encoding="utf-8"))
    assert batch["date"] == "2024-08-05"
    assert batch["numberOfWeekMenus"] == 2
    assert batch["weekMenus"][0] is None
    assert batch["weekMenus"][1]["id"] == "456"
    assert batch["weekMenus"][1]["name"] == "Parmesan meatballs"
    assert batch["weekMenus"][1]["servings"]["small"]["calories"] == "450kcal"
    assert all(session.closed for session in factory.sessions)


@pytest.mark.asyncio
async def test_run_moves_on_after_a_failed_date(tmp_path, make_factory, panel_html):
    listing = '<a class="h-full" href="/en/week-menu/2024-08-12/300-chili">Chili</a>'
    meal_url = "https://www.wecookmeals.ca/en/week-menu/2024-08-12/300-chili"
    panels = [panel_html("500", "10 g", "20 g"), panel_html("700", "15 g", "30 g")]
    factory = make_factory(
        {
            # no listing page for 2024-08-05
            "https://www.wecookmeals.ca/en/week-menu/2024-08-12": listing,
            meal_url: panel_html("", "", ""),
        },
        on_click=lambda session, selector, index: panels[index],
    )

    summary = await run("weCookMeals", dates=["2024-08-05", "2024-08-12"], factory=factory,
                        sink=JsonFileSink(tmp_path), settings=RunSettings(settle_delay_ms=0))

    assert summary["failed"] == ["2024-08-05"]
    assert len(summary["written"]) == 1
    batch = json.loads((tmp_path / "weCookMeals" / "2024-08" / "2024-08-12.json").read_text(encoding="utf-8"))
    assert batch["weekMenus"][0]["periodKey"] == "2024-08-12"
    assert batch["weekMenus"][0]["servings"]["regular"]["calories"] == "700"


@pytest.mark.asyncio
async def test_run_records_sitemap_failure_and_continues(monkeypatch, tmp_path, make_factory):
    def unreachable(url, headers, timeout):
        raise requests.exceptions.ConnectionError("dns failure")

    monkeypatch.setattr(sitemap.requests, "get", unreachable)

    summary = await run("weCookMealsLegacy", dates=["2024-08-05", "2024-08-12"], factory=make_factory({}),
                        sink=JsonFileSink(tmp_path))

    assert summary["failed"] == ["2024-08-05", "2024-08-12"]
    assert summary["written"] == []


@pytest.mark.asyncio
async def test_run_aborts_without_valid_dates(tmp_path, make_factory):
    with pytest.raises(InvalidInputError):
        await run("weCookMeals", dates=["not-a-date"], factory=make_factory({}), sink=JsonFileSink(tmp_path))


@pytest.mark.asyncio
async def test_scrape_meal_uses_vendor_protocol(make_factory, labeled_list_html):
    url = "https://www.factormeals.ca/recipes/chicken-pesto-penne-64f1a2b3?week=2024-W32"

    record = await scrape_meal("factorMeals", url, factory=make_factory({url: labeled_list_html}))

    assert record["servings"]["regular"]["calories"] == "620 kcal"


@pytest.mark.asyncio
async def test_scrape_week_does_not_save_an_empty_week(tmp_path, make_factory):
    batch = await scrape_week("weCookMeals", "2024-08-05", factory=make_factory({}), sink=JsonFileSink(tmp_path),
                              settings=RunSettings(settle_delay_ms=0))

    assert batch == {"date": "2024-08-05", "numberOfWeekMenus": 0, "weekMenus": []}
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_run_downloads_the_sitemap_once(monkeypatch, tmp_path, make_factory, mock_response,
                                              nutrition_table_html):
    first = "https://www.wecookmeals.ca/en/week-menu/2024-08-05/456-parmesan-meatballs"
    second = "https://www.wecookmeals.ca/en/week-menu/2024-08-12/501-butter-chicken"
    requested = []

    def fake_get(url, headers, timeout):
        requested.append(url)
        return mock_response(f"<urlset><url><loc>{first}</loc></url><url><loc>{second}</loc></url></urlset>")

    monkeypatch.setattr(sitemap.requests, "get", fake_get)
    factory = make_factory({first: nutrition_table_html, second: nutrition_table_html})

    summary = await run("weCookMealsLegacy", dates=["2024-08-05", "2024-08-12"], factory=factory,
                        sink=JsonFileSink(tmp_path))

    assert len(requested) == 1
    assert len(summary["written"]) == 2
    assert summary["failed"] == []
