"""Bounded "next page" crawling on an open Playwright page."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.sync_api import Error as PWError, Page

from . import config
from .extraction import extract_text_blocks
from .logging_utils import _scraper_event


@dataclass
class CrawledPage:
    index: int
    url: str
    html: str
    text: List[str] = field(default_factory=list)


def crawl(
    page: Page,
    next_selector: str,
    max_depth: int,
    *,
    delay_seconds: Optional[float] = None,
    wait_until: str = "networkidle",
    sleep: Callable[[float], None] = time.sleep,
) -> list[CrawledPage]:
    """Follow ``next_selector`` at most ``max_depth`` times.

    Stops early when the control is absent. A failed transition ends the crawl
    and the pages gathered so far are returned.
    """

    pages: list[CrawledPage] = []
    if max_depth <= 0 or not next_selector:
        return pages

    delay = config.PAGINATION_DELAY_SECONDS if delay_seconds is None else delay_seconds
    stop_reason = "max_depth"

    for depth in range(1, max_depth + 1):
        if depth > 1 and delay > 0:
            sleep(delay)

        try:
            control = page.query_selector(next_selector)
        except PWError as exc:
            _scraper_event("error", phase="paginate", step="lookup", depth=depth, error=str(exc))
            stop_reason = "lookup_failed"
            break
        if control is None:
            stop_reason = "no_next_control"
            break

        try:
            with page.expect_navigation(
                wait_until=wait_until, timeout=config.CLICK_NAV_TIMEOUT_SECONDS * 1000
            ):
                control.click()
            html = page.content()
        except PWError as exc:
            _scraper_event(
                "error",
                phase="paginate",
                step="navigate",
                depth=depth,
                selector=next_selector,
                error=str(exc),
            )
            stop_reason = "navigation_failed"
            break

        pages.append(CrawledPage(index=depth, url=page.url, html=html, text=extract_text_blocks(html)))

    _scraper_event(
        "state",
        phase="paginate",
        kind="summary",
        pages=len(pages),
        max_depth=max_depth,
        stop_reason=stop_reason,
    )
    return pages


__all__ = ["CrawledPage", "crawl"]
