"""Single-target scrape jobs tracked through the job registry.

Stages and the progress they report:

* 10  job registered, browser starting
* 30  page loaded (and logged in, when configured)
* 50  content extracted; the job waits for analysis unless ``skipAnalysis``
* 70  analysis running
* 90  analysis attached, then the job completes at 100
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from . import config
from .analysis import AnalysisOptions, BasicContentAnalyzer, ContentAnalyzer
from .batch import SessionFactory
from .browser_session import BrowserSession
from .error_codes import InvalidRequestError, InvalidURLError, JobNotFoundError, JobTerminalError
from .extraction import ContentOptions, extract_content, extract_page_metadata
from .jobs import JobStore, ScrapeJob
from .logging_utils import _scraper_event
from .models import ScrapeOptions
from .pagination import crawl
from .utils import is_valid_url

PROGRESS_STARTED = 10
PROGRESS_LOADED = 30
PROGRESS_EXTRACTED = 50
PROGRESS_ANALYSING = 70
PROGRESS_ANALYSED = 90


@dataclass(frozen=True)
class LoginCredentials:
    username: str
    password: str
    username_selector: str
    password_selector: str
    submit_selector: str


@dataclass(frozen=True)
class JobOptions:
    url: str
    stealth_mode: bool = False
    proxy_url: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    wait_for_dynamic_content: bool = False
    wait_selector: Optional[str] = None
    wait_time_ms: Optional[int] = None
    login: Optional[LoginCredentials] = None
    content: ContentOptions = ContentOptions()
    next_button_selector: Optional[str] = None
    max_pages: int = config.DEFAULT_MAX_PAGES
    skip_analysis: bool = False

    def to_scrape_options(self) -> ScrapeOptions:
        return ScrapeOptions(
            wait_for_selector=self.wait_selector,
            wait_timeout_ms=self.wait_time_ms or config.DEFAULT_WAIT_TIMEOUT_MS,
            wait_until=self.wait_until,
            proxy=self.proxy_url,
            proxy_username=self.proxy_username,
            proxy_password=self.proxy_password,
            user_agent=config.STEALTH_USER_AGENT if self.stealth_mode else None,
        )

    @property
    def wait_until(self) -> str:
        return "networkidle" if self.wait_for_dynamic_content else "domcontentloaded"


def _login_credentials(options: Mapping[str, Any]) -> Optional[LoginCredentials]:
    if not options.get("loginRequired"):
        return None
    creds = options.get("loginCredentials")
    if not isinstance(creds, Mapping):
        return None
    fields = ("username", "password", "usernameSelector", "passwordSelector", "submitSelector")
    values = [str(creds.get(name) or "") for name in fields]
    # Partial credentials are ignored rather than half-filling a form.
    if not all(values):
        return None
    return LoginCredentials(*values)


def parse_job_options(payload: Any) -> JobOptions:
    if not isinstance(payload, Mapping) or not is_valid_url(payload.get("url")):
        raise InvalidURLError("Invalid URL provided")

    security = payload.get("securityOptions") or {}
    if not isinstance(security, Mapping):
        raise InvalidRequestError("securityOptions must be an object")
    proxy_enabled = bool(security.get("enableProxy")) and bool(security.get("proxyUrl"))

    pagination = payload.get("pagination") or {}
    if not isinstance(pagination, Mapping):
        raise InvalidRequestError("pagination must be an object")
    next_selector = None
    if pagination.get("enabled") and pagination.get("nextButtonSelector"):
        next_selector = str(pagination["nextButtonSelector"])
    try:
        max_pages = int(pagination.get("maxPages") or config.DEFAULT_MAX_PAGES)
        wait_time = int(payload["waitTime"]) if payload.get("waitTime") else None
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError("maxPages and waitTime must be integers") from exc

    return JobOptions(
        url=payload["url"].strip(),
        stealth_mode=bool(payload.get("stealthMode")),
        proxy_url=str(security["proxyUrl"]) if proxy_enabled else None,
        proxy_username=security.get("proxyUsername") if proxy_enabled else None,
        proxy_password=security.get("proxyPassword") if proxy_enabled else None,
        wait_for_dynamic_content=bool(payload.get("waitForDynamicContent")),
        wait_selector=payload.get("selector") or None,
        wait_time_ms=wait_time,
        login=_login_credentials(payload),
        content=ContentOptions(
            scrape_text=payload.get("scrapeText") is not False,
            scrape_images=bool(payload.get("scrapeImages")),
            scrape_videos=bool(payload.get("scrapeVideos")),
            skip_headers_footers=bool(payload.get("skipHeadersFooters")),
            skip_media=bool(payload.get("skipMedia")),
        ),
        next_button_selector=next_selector,
        max_pages=max(1, max_pages),
        skip_analysis=bool(payload.get("skipAnalysis")),
    )


def _login(page: Any, creds: LoginCredentials) -> None:
    page.fill(creds.username_selector, creds.username)
    page.fill(creds.password_selector, creds.password)
    with page.expect_navigation(
        wait_until="networkidle", timeout=config.CLICK_NAV_TIMEOUT_SECONDS * 1000
    ):
        page.click(creds.submit_selector)


def _mark_failed(store: JobStore, job_id: str, exc: Exception) -> None:
    # The job may have been evicted or finished meanwhile; keep the original error.
    try:
        store.fail(job_id, str(exc))
    except (JobNotFoundError, JobTerminalError) as store_exc:
        _scraper_event("error", phase="job", job_id=job_id, step="fail_not_recorded", error=str(store_exc))


def start_job(
    store: JobStore,
    payload: Any,
    job_id: Optional[str] = None,
    *,
    session_factory: SessionFactory = BrowserSession,
    sleep: Callable[[float], None] = time.sleep,
) -> ScrapeJob:
    """Run the extraction stages of a job and return its snapshot.

    Invalid options and duplicate ids raise before the job is registered.
    Once registered, any failure marks the job failed and is re-raised.
    """

    options = parse_job_options(payload)
    job_id = job_id or uuid.uuid4().hex
    store.create(job_id, options.url)
    store.advance_to(job_id, PROGRESS_STARTED)
    scrape_options = options.to_scrape_options()

    try:
        with session_factory() as session:
            with session.open_page(options.url, scrape_options) as page:
                session.navigate(page, options.url, scrape_options)
                if not options.wait_selector and options.wait_time_ms:
                    sleep(options.wait_time_ms / 1000)
                if options.login is not None:
                    _login(page, options.login)
                store.advance_to(job_id, PROGRESS_LOADED)

                title = page.title()
                html = page.content()
                page_meta = extract_page_metadata(html, title=title)
                bundle = extract_content(html, options.content)

                if options.next_button_selector:
                    for crawled in crawl(
                        page,
                        options.next_button_selector,
                        options.max_pages - 1,
                        wait_until="networkidle",
                        sleep=sleep,
                    ):
                        if options.content.scrape_text:
                            bundle.text.extend(crawled.text)

        job = store.advance_to(
            job_id,
            PROGRESS_EXTRACTED,
            patch={
                "data": bundle.to_dict(),
                "metadata": {
                    "pageTitle": page_meta.title,
                    "pageDescription": page_meta.description,
                    "pageKeywords": page_meta.keywords,
                    "totalElements": bundle.total_elements(),
                },
            },
        )
    except Exception as exc:  # noqa: BLE001
        _scraper_event("error", phase="job", job_id=job_id, url=options.url, error=str(exc))
        _mark_failed(store, job_id, exc)
        raise

    if options.skip_analysis:
        job = store.complete(job_id)
    _scraper_event(
        "state",
        phase="job",
        job_id=job_id,
        kind="extracted",
        total_elements=job.metadata.get("totalElements"),
        status=job.status.value,
    )
    return job


def run_analysis(
    store: JobStore,
    job_id: str,
    options: AnalysisOptions,
    analyzer: Optional[ContentAnalyzer] = None,
) -> ScrapeJob:
    """Attach post-processing output to an extracted job and complete it."""

    snapshot = store.advance_to(job_id, PROGRESS_ANALYSING, min_progress=PROGRESS_EXTRACTED)
    try:
        analysis = (analyzer or BasicContentAnalyzer()).analyze(snapshot, options)
    except Exception as exc:  # noqa: BLE001
        _scraper_event("error", phase="analysis", job_id=job_id, error=str(exc))
        _mark_failed(store, job_id, exc)
        raise
    store.advance_to(job_id, PROGRESS_ANALYSED, patch={"aiAnalysis": analysis})
    return store.complete(job_id)


__all__ = [
    "JobOptions",
    "LoginCredentials",
    "parse_job_options",
    "start_job",
    "run_analysis",
]
