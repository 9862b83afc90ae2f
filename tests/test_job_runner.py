import pytest

from app.scraper import config
from app.scraper.analysis import AnalysisOptions, BasicContentAnalyzer, parse_analysis_options, top_keywords
from app.scraper.error_codes import (
    DuplicateJobError,
    InvalidURLError,
    JobNotFoundError,
    NavigationError,
    JobNotReadyError,
    JobTerminalError,
)
from app.scraper.job_runner import parse_job_options, run_analysis, start_job
from app.scraper.jobs import JobStatus, JobStore
from tests.scraping_fakes import EXAMPLE_HTML, FakePage, FakeSession, session_factory, unreachable

URL = "https://example.com/"


def _session(*pages: str, title: str = "Example Domain") -> FakeSession:
    return FakeSession({URL: FakePage(list(pages or [EXAMPLE_HTML]), title=title)})


def test_start_job_extracts_content_and_waits_for_analysis() -> None:
    store = JobStore()
    session = _session()

    job = start_job(
        store,
        {"url": URL, "scrapeImages": True, "skipHeadersFooters": True},
        "job-1",
        session_factory=session_factory(session),
    )

    assert job.status is JobStatus.IN_PROGRESS
    assert job.progress == 50
    assert job.metadata["pageTitle"] == "Example Domain"
    assert job.metadata["pageKeywords"] == ["alpha", "beta", "gamma"]
    assert job.data["images"] == ["/logo.png"]
    assert job.metadata["totalElements"] == sum(len(v) for v in job.data.values())


def test_skip_analysis_completes_job() -> None:
    store = JobStore()
    job = start_job(store, {"url": URL, "skipAnalysis": True}, "j", session_factory=session_factory(_session()))

    assert job.status is JobStatus.COMPLETED
    assert job.progress == 100


def test_generated_job_id() -> None:
    store = JobStore()
    job = start_job(store, {"url": URL}, session_factory=session_factory(_session()))
    assert len(job.id) == 32
    assert job.id in store


def test_invalid_url_and_duplicate_id_raise_before_registration() -> None:
    store = JobStore()
    with pytest.raises(InvalidURLError):
        start_job(store, {"url": "nope"}, "j", session_factory=session_factory(_session()))
    assert len(store) == 0

    start_job(store, {"url": URL}, "j", session_factory=session_factory(_session()))
    with pytest.raises(DuplicateJobError):
        start_job(store, {"url": URL}, "j", session_factory=session_factory(_session()))


def test_navigation_failure_marks_job_failed() -> None:
    store = JobStore()
    session = FakeSession({URL: FakePage([EXAMPLE_HTML])}, failing={URL: unreachable(URL)})

    with pytest.raises(Exception):
        start_job(store, {"url": URL}, "j", session_factory=session_factory(session))

    job = store.get("j")
    assert job.status is JobStatus.FAILED
    assert "ERR_NAME_NOT_RESOLVED" in job.error
    assert job.progress < 100


def test_navigation_error_survives_job_eviction(monkeypatch) -> None:
    store = JobStore()
    session = FakeSession({URL: FakePage([EXAMPLE_HTML])}, failing={URL: unreachable(URL)})

    def _evicted(job_id, error):
        raise JobNotFoundError(f"Job {job_id!r} not found")

    monkeypatch.setattr(store, "fail", _evicted)

    with pytest.raises(NavigationError, match="ERR_NAME_NOT_RESOLVED"):
        start_job(store, {"url": URL}, "j", session_factory=session_factory(session))


def test_login_and_pagination(monkeypatch) -> None:
    monkeypatch.setattr(config, "PAGINATION_DELAY_SECONDS", 0)
    pages = [f"<p>Listing page number {n} text</p>" for n in range(1, 5)]
    page = FakePage(pages)
    session = FakeSession({URL: page})
    sleeps: list[float] = []

    job = start_job(
        JobStore(),
        {
            "url": URL,
            "waitTime": 1500,
            "loginRequired": True,
            "loginCredentials": {
                "username": "ada",
                "password": "secret",
                "usernameSelector": "#user",
                "passwordSelector": "#pass",
                "submitSelector": "button[type=submit]",
            },
            "pagination": {"enabled": True, "nextButtonSelector": "a.next", "maxPages": 3},
        },
        "j",
        session_factory=session_factory(session),
        sleep=sleeps.append,
    )

    assert page.filled == {"#user": "ada", "#pass": "secret"}
    assert page.clicked == ["button[type=submit]"]
    assert sleeps[0] == 1.5
    assert job.data["text"] == [
        "Listing page number 1 text",
        "Listing page number 2 text",
        "Listing page number 3 text",
    ]


def test_job_options_stealth_and_proxy() -> None:
    options = parse_job_options(
        {
            "url": URL,
            "stealthMode": True,
            "waitForDynamicContent": True,
            "securityOptions": {
                "enableProxy": True,
                "proxyUrl": "http://proxy.local:3128",
                "proxyUsername": "u",
                "proxyPassword": "p",
            },
        }
    )
    scrape_options = options.to_scrape_options()

    assert scrape_options.user_agent == config.STEALTH_USER_AGENT
    assert scrape_options.proxy == "http://proxy.local:3128"
    assert scrape_options.proxy_username == "u"
    assert scrape_options.wait_until == "networkidle"


def test_analysis_attaches_and_completes() -> None:
    store = JobStore()
    start_job(store, {"url": URL}, "j", session_factory=session_factory(_session()))

    job = run_analysis(
        store,
        "j",
        parse_analysis_options(
            {"generateSummary": True, "extractKeywords": True, "extractStructuredData": True, "cleaningLevel": "basic"}
        ),
    )

    assert job.status is JobStatus.COMPLETED
    assert job.progress == 100
    assert job.ai_analysis["keywords"] == ["alpha", "beta", "gamma"]
    assert job.ai_analysis["structuredData"]["title"] == "Example Domain"
    assert "Example Title" in job.ai_analysis["summary"]
    assert "sentiment" not in job.ai_analysis

    with pytest.raises(JobTerminalError):
        run_analysis(store, "j", AnalysisOptions())


def test_analysis_requires_extraction() -> None:
    store = JobStore()
    store.create("j", URL)
    store.advance_to("j", 30)

    with pytest.raises(JobNotReadyError):
        run_analysis(store, "j", AnalysisOptions())


def test_analysis_rejects_pending_job() -> None:
    store = JobStore()
    store.create("j", URL)

    with pytest.raises(JobNotReadyError):
        run_analysis(store, "j", AnalysisOptions(generate_summary=True))

    job = store.get("j")
    assert job.status is JobStatus.PENDING
    assert job.progress == 0
    assert job.ai_analysis is None


def test_analysis_failure_marks_job_failed() -> None:
    class _Broken(BasicContentAnalyzer):
        def analyze(self, job, options):
            raise RuntimeError("analysis service unavailable")

    store = JobStore()
    start_job(store, {"url": URL}, "j", session_factory=session_factory(_session()))

    with pytest.raises(RuntimeError):
        run_analysis(store, "j", AnalysisOptions(), _Broken())
    assert store.get("j").status is JobStatus.FAILED


def test_top_keywords_ranks_by_frequency_then_alphabetically() -> None:
    texts = ["scraper scraper browser", "browser selector scraper", "with this that"]
    assert top_keywords(texts, limit=2) == ["scraper", "browser"]
