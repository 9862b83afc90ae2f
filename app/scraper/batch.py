"""Sequential multi-target scraping over one browser session."""
from __future__ import annotations

import time
from typing import Any, Callable, ContextManager, Sequence

from .browser_session import BrowserSession
from .error_codes import ErrorCode, InvalidURLError
from .extraction import extract, extract_all, merge_page_data
from .logging_utils import _scraper_event
from .models import ResultMetadata, ScrapeOptions, ScrapeTarget, ScrapingResult
from .pagination import crawl
from .selector_model import SelectorConfig
from .utils import is_valid_url

SessionFactory = Callable[[], ContextManager[Any]]

INVALID_URL_MESSAGE = "Invalid URL provided"


def scrape_target(session: Any, target: ScrapeTarget) -> ScrapingResult:
    """Scrape a single target on ``session``; never raises.

    Any failure while opening, navigating or reading the page becomes a
    failed ``ScrapingResult``. Failures inside individual selectors are
    embedded in ``data`` by ``extract_all`` and leave the target successful.
    """

    if not is_valid_url(target.url):
        return ScrapingResult.failed(target.url, INVALID_URL_MESSAGE)

    options = target.options
    try:
        with session.open_page(target.url, options) as page:
            nav = session.navigate(page, target.url, options)
            screenshot = session.screenshot(page) if options.capture_screenshot else None
            title = page.title()
            data = extract_all(page.content(), target.selectors)

            if options.paginate:
                wait_until = "networkidle" if options.enable_javascript else "domcontentloaded"
                for crawled in crawl(
                    page, options.next_page_selector, options.max_depth, wait_until=wait_until
                ):
                    data = merge_page_data(data, extract_all(crawled.html, target.selectors))
    except Exception as exc:  # noqa: BLE001
        _scraper_event(
            "error",
            phase="target",
            url=target.url,
            error_code=getattr(exc, "error_code", ErrorCode.INTERNAL),
            error=str(exc),
        )
        return ScrapingResult.failed(target.url, str(exc))

    metadata = ResultMetadata(
        page_title=title,
        status_code=nav.status_code,
        content_type=nav.content_type,
        response_time_ms=nav.response_time_ms,
    )
    return ScrapingResult(
        url=target.url, success=True, data=data, metadata=metadata, screenshot=screenshot
    )


def scrape_targets(
    targets: Sequence[ScrapeTarget],
    *,
    session_factory: SessionFactory = BrowserSession,
    sleep: Callable[[float], None] = time.sleep,
) -> list[ScrapingResult]:
    """Scrape ``targets`` in order, one result per target.

    Only a browser launch failure escapes; every per-target error is isolated.
    """

    results: list[ScrapingResult] = []
    with session_factory() as session:
        last_index = len(targets) - 1
        for index, target in enumerate(targets):
            result = scrape_target(session, target)
            results.append(result)
            _scraper_event(
                "target",
                index=index,
                url=target.url,
                success=result.success,
                error=result.error,
            )
            if index < last_index and target.options.throttle_ms > 0:
                sleep(target.options.throttle_ms / 1000)

    succeeded = sum(1 for result in results if result.success)
    _scraper_event(
        "state",
        phase="batch",
        kind="summary",
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )
    return results


def fetch_html(url: str, *, session_factory: SessionFactory = BrowserSession) -> str:
    """Return the rendered HTML of ``url``."""

    if not is_valid_url(url):
        raise InvalidURLError(INVALID_URL_MESSAGE)
    options = ScrapeOptions()
    with session_factory() as session:
        with session.open_page(url, options) as page:
            session.navigate(page, url, options)
            return page.content()


def try_selector(
    url: str, selector: SelectorConfig, *, session_factory: SessionFactory = BrowserSession
) -> list:
    """Evaluate one selector against ``url`` and return the flattened values."""

    if not is_valid_url(url):
        raise InvalidURLError(INVALID_URL_MESSAGE)
    options = ScrapeOptions()
    with session_factory() as session:
        with session.open_page(url, options) as page:
            session.navigate(page, url, options)
            html = page.content()
    return extract(html, selector)


__all__ = ["scrape_target", "scrape_targets", "fetch_html", "try_selector", "SessionFactory"]
