from playwright.sync_api import Error as PWError

from app.scraper.pagination import crawl
from tests.scraping_fakes import FakePage


def _pages(count: int) -> list[str]:
    return [f"<p>Result block number {n} on this page</p>" for n in range(1, count + 1)]


def test_crawl_stops_at_max_depth() -> None:
    page = FakePage(_pages(10))
    sleeps: list[float] = []

    crawled = crawl(page, "a.next", 3, delay_seconds=0.5, sleep=sleeps.append)

    assert page.clicks == 3
    assert [c.index for c in crawled] == [1, 2, 3]
    assert crawled[-1].text == ["Result block number 4 on this page"]
    # no delay before the first transition
    assert sleeps == [0.5, 0.5]


def test_crawl_stops_when_control_missing() -> None:
    page = FakePage(_pages(2))

    crawled = crawl(page, "a.next", 5, delay_seconds=0, sleep=lambda _s: None)

    assert len(crawled) == 1
    assert page.clicks == 1


def test_crawl_keeps_pages_gathered_before_a_failed_transition() -> None:
    page = FakePage(_pages(5))
    original_query = page.query_selector

    def _query(selector):
        control = original_query(selector)
        if page.index == 1:
            page.navigation_error = PWError("Timeout 30000ms exceeded")
        return control

    page.query_selector = _query

    crawled = crawl(page, "a.next", 4, delay_seconds=0, sleep=lambda _s: None)

    assert len(crawled) == 1


def test_zero_depth_does_nothing() -> None:
    page = FakePage(_pages(3))
    assert crawl(page, "a.next", 0) == []
    assert page.clicks == 0
