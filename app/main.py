from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from app.scraper import config
from app.scraper.analysis import BasicContentAnalyzer, parse_analysis_options
from app.scraper.batch import fetch_html, scrape_targets, try_selector
from app.scraper.browser_session import BrowserSession
from app.scraper.config_validation import validate_runtime_config
from app.scraper.error_codes import ErrorCode, InvalidRequestError, InvalidURLError, ScrapeError
from app.scraper.export import export_results
from app.scraper.healthcheck import run_health_checks
from app.scraper.job_runner import run_analysis, start_job
from app.scraper.jobs import JobStore
from app.scraper.logging_utils import _scraper_event
from app.scraper.models import parse_results, parse_target
from app.scraper.persistence import parse_db_config, save_results
from app.scraper.selector_model import parse_selector
from app.scraper.uploads import parse_url_file
from app.scraper.utils import ensure_dirs, is_valid_url

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-change-me")
app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES

# Create data/export directories on import so WSGI entrypoints also have them.
ensure_dirs()

# Shared across requests; the store serialises writes per job.
JOBS = JobStore()
# Replaced in tests with fakes that never start a browser.
SESSION_FACTORY = BrowserSession
ANALYZER = BasicContentAnalyzer()

_OPEN_PATHS = {"/scraping/health"}


def _error_response(exc: ScrapeError) -> tuple[Response, int]:
    return jsonify({"success": False, "error": str(exc), "code": exc.error_code}), exc.http_status


def _internal_error(route: str, exc: Exception) -> tuple[Response, int]:
    _scraper_event("error", phase="http", route=route, error=str(exc))
    return jsonify({"success": False, "error": str(exc), "code": ErrorCode.INTERNAL}), 500


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _get_api_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return request.headers.get("X-API-Token")


@app.before_request
def _require_token() -> Any:
    if not request.path.startswith("/scraping/") or request.path in _OPEN_PATHS:
        return None
    if not config.auth_required():
        return None
    if _get_api_token() != config.API_TOKEN:
        _scraper_event(
            "error",
            phase="http",
            error="invalid_token",
            path=request.path,
            remote_addr=request.remote_addr,
        )
        return (
            jsonify({"success": False, "error": "Unauthorised", "code": ErrorCode.UNAUTHORISED}),
            401,
        )
    return None


@app.errorhandler(ScrapeError)
def _handle_scrape_error(exc: ScrapeError) -> tuple[Response, int]:
    _scraper_event(
        "error",
        phase="http",
        path=request.path,
        error_code=exc.error_code,
        status=exc.http_status,
        error=str(exc),
    )
    return _error_response(exc)


@app.errorhandler(Exception)
def _handle_unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    return _internal_error(request.path, exc)


@app.errorhandler(413)
def _handle_too_large(_exc: Exception) -> tuple[Response, int]:
    return (
        jsonify(
            {
                "success": False,
                "error": f"Upload exceeds {config.MAX_UPLOAD_BYTES} bytes",
                "code": ErrorCode.INVALID_REQUEST,
            }
        ),
        413,
    )


@app.post("/scraping/fetch")
def scraping_fetch() -> Response:
    url = _json_body().get("url")
    if not is_valid_url(url):
        raise InvalidURLError("Invalid URL provided")
    try:
        html = fetch_html(url, session_factory=SESSION_FACTORY)
    except ScrapeError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _internal_error("fetch", exc)
    return jsonify({"html": html})


@app.post("/scraping/test-selector")
def scraping_test_selector() -> Response:
    payload = _json_body()
    url = payload.get("url")
    if not is_valid_url(url):
        raise InvalidURLError("Invalid URL provided")
    selector = parse_selector(payload.get("selector"), fallback_id="selector")
    try:
        values = try_selector(url, selector, session_factory=SESSION_FACTORY)
    except Exception as exc:  # noqa: BLE001
        _scraper_event("error", phase="http", route="test-selector", url=url, error=str(exc))
        code = getattr(exc, "error_code", ErrorCode.INTERNAL)
        return jsonify({"success": False, "error": str(exc), "code": code}), 500
    return jsonify({"success": True, "result": values, "count": len(values)})


@app.post("/scraping/scrape")
def scraping_scrape() -> Response:
    targets_raw = _json_body().get("targets")
    if not isinstance(targets_raw, list) or not targets_raw:
        raise InvalidRequestError("Invalid targets provided")
    # Malformed selectors reject the whole request before any browser starts.
    targets = [parse_target(item) for item in targets_raw]
    try:
        results = scrape_targets(targets, session_factory=SESSION_FACTORY)
    except ScrapeError:
        raise
    except Exception as exc:  # noqa: BLE001
        return _internal_error("scrape", exc)
    return jsonify([result.to_dict() for result in results])


@app.post("/scraping/save-file")
def scraping_save_file() -> Response:
    payload = _json_body()
    results = parse_results(payload.get("results"))
    filename = payload.get("filename")
    exported = export_results(
        results,
        str(payload.get("format") or "json"),
        filename=str(filename) if filename else None,
        save_to_public=bool(payload.get("saveToPublic")),
    )
    return jsonify({"success": True, **exported.to_dict()})


@app.post("/scraping/save-db")
def scraping_save_db() -> Response:
    payload = _json_body()
    results = parse_results(payload.get("results"))
    db_config = parse_db_config(payload.get("dbConfig"))
    outcome = save_results(results, db_config)
    return jsonify({"success": True, "message": outcome.message, "rowCount": outcome.row_count})


@app.post("/scraping/start-job")
def scraping_start_job() -> Response:
    payload = _json_body()
    job_id = payload.get("jobId")
    try:
        job = start_job(
            JOBS,
            payload.get("options"),
            str(job_id) if job_id else None,
            session_factory=SESSION_FACTORY,
        )
    except ScrapeError as exc:
        if exc.http_status < 500:
            raise
        return jsonify({"success": False, "error": str(exc), "code": exc.error_code}), 500
    except Exception as exc:  # noqa: BLE001
        return _internal_error("start-job", exc)
    return jsonify(
        {
            "success": True,
            "jobId": job.id,
            "status": job.status.value,
            "progress": job.progress,
            "metadata": job.metadata,
        }
    )


@app.post("/scraping/analyze")
def scraping_analyze() -> Response:
    payload = _json_body()
    result_id = payload.get("resultId")
    if not result_id or JOBS.get(str(result_id)) is None:
        raise InvalidRequestError("Invalid or missing result ID")
    job = run_analysis(
        JOBS, str(result_id), parse_analysis_options(payload.get("options")), ANALYZER
    )
    return jsonify(
        {
            "success": True,
            "jobId": job.id,
            "progress": job.progress,
            "aiAnalysis": job.ai_analysis,
        }
    )


@app.get("/scraping/job/<job_id>")
def scraping_job(job_id: str) -> Response:
    job = JOBS.get(job_id)
    if job is None:
        return jsonify({"success": False, "error": "Job not found", "code": ErrorCode.JOB_NOT_FOUND}), 404
    return jsonify(job.to_dict())


@app.post("/scraping/upload-urls")
def scraping_upload_urls() -> Response:
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise InvalidRequestError("No file uploaded")
    result = parse_url_file(upload.filename, upload.read())
    return jsonify(result.to_dict())


@app.get("/scraping/health")
def scraping_health() -> Response:
    result = run_health_checks(entrypoint="ui")
    return jsonify(result.to_dict()), (200 if result.ok else 503)


if __name__ == "__main__":
    validate_runtime_config("ui")
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
