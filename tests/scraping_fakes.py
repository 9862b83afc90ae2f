"""Playwright page/session doubles shared by the scraping tests."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from app.scraper.browser_session import NavigationResult
from app.scraper.error_codes import NavigationError


class FakeControl:
    def __init__(self, page: "FakePage") -> None:
        self._page = page

    def click(self) -> None:
        self._page.clicks += 1
        self._page.index += 1


class FakePage:
    """Serves a fixed sequence of HTML documents; clicking "next" moves on."""

    def __init__(self, pages: List[str], *, title: str = "", url: str = "https://example.com/") -> None:
        self.pages = pages
        self.index = 0
        self._title = title
        self._base_url = url
        self.clicks = 0
        self.filled: Dict[str, str] = {}
        self.clicked: List[str] = []
        self.navigation_error: Optional[Exception] = None

    @property
    def url(self) -> str:
        return f"{self._base_url}?page={self.index + 1}"

    def title(self) -> str:
        return self._title

    def content(self) -> str:
        return self.pages[self.index]

    def query_selector(self, _selector: str) -> Optional[FakeControl]:
        if self.index >= len(self.pages) - 1:
            return None
        return FakeControl(self)

    @contextmanager
    def expect_navigation(self, **_kwargs) -> Iterator[None]:  # noqa: ANN003
        yield
        if self.navigation_error is not None:
            raise self.navigation_error

    def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value

    def click(self, selector: str) -> None:
        self.clicked.append(selector)


class FakeSession:
    """Stands in for ``BrowserSession``; pages are looked up by URL."""

    def __init__(
        self,
        pages: Dict[str, FakePage],
        *,
        failing: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.pages = pages
        self.failing = failing or {}
        self.opened: List[str] = []
        self.options_seen: list = []
        self.entered = False
        self.closed = False

    def __enter__(self) -> "FakeSession":
        self.entered = True
        return self

    def __exit__(self, *_exc: object) -> None:
        self.closed = True

    @contextmanager
    def open_page(self, url: str, options) -> Iterator[FakePage]:  # noqa: ANN001
        self.opened.append(url)
        self.options_seen.append(options)
        yield self.pages[url]

    def navigate(self, page: FakePage, url: str, options) -> NavigationResult:  # noqa: ANN001
        if url in self.failing:
            raise self.failing[url]
        return NavigationResult(status_code=200, content_type="text/html", response_time_ms=12)

    def screenshot(self, _page: FakePage) -> str:
        return "c2NyZWVu"


def session_factory(session: FakeSession) -> Callable[[], FakeSession]:
    return lambda: session


def unreachable(url: str) -> NavigationError:
    return NavigationError(f"Navigation to {url} failed: net::ERR_NAME_NOT_RESOLVED")


EXAMPLE_HTML = """
<html>
  <head>
    <title>Example Domain</title>
    <meta name="description" content="An example page">
    <meta name="keywords" content="alpha, beta ,, gamma">
  </head>
  <body>
    <header><p>Site navigation header text</p></header>
    <h1 class="title">Example Title</h1>
    <p class="lead">This paragraph is long enough to count as a text block.</p>
    <a class="link primary" href="/one">One</a>
    <a class="link" href="/two">Two</a>
    <a class="link">Three</a>
    <ul class="menu"><li>Home</li><li>About</li></ul>
    <ul class="menu"><li>Contact</li></ul>
    <table><tr><th>Name</th><th>Age</th></tr><tr><td>Ada</td><td>36</td></tr></table>
    <img src="/logo.png"><img src="data:image/png;base64,AAAA">
    <iframe src="https://www.youtube.com/embed/xyz"></iframe>
    <footer><p>Copyright footer text here</p></footer>
  </body>
</html>
"""
