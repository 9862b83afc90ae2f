"""Error taxonomy for the scraping engine.

Codes are stable strings included in structured logs and JSON error bodies so
callers can tell failure classes apart without parsing messages. Each
exception carries the HTTP status the Flask layer answers with when it
escapes a route.
"""
from __future__ import annotations


class ErrorCode:
    INVALID_URL = "invalid_url"
    INVALID_SELECTOR = "invalid_selector"
    INVALID_REQUEST = "invalid_request"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    NAVIGATION_ERROR = "navigation_error"
    EXTRACTION = "extraction_error"
    BROWSER_LAUNCH = "browser_launch_failed"
    UNSUPPORTED_FORMAT = "unsupported_export_format"
    FILESYSTEM = "filesystem_error"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"
    PERSISTENCE = "persistence_error"
    INVALID_IDENTIFIER = "invalid_identifier"
    NO_ROWS = "no_rows"
    DUPLICATE_JOB = "duplicate_job"
    JOB_NOT_FOUND = "job_not_found"
    JOB_TERMINAL = "job_terminal"
    JOB_NOT_READY = "job_not_ready"
    UNAUTHORISED = "unauthorised"
    INTERNAL = "internal_error"


class ScrapeError(Exception):
    error_code: str = ErrorCode.INTERNAL
    http_status: int = 500

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class InvalidURLError(ScrapeError):
    error_code = ErrorCode.INVALID_URL
    http_status = 400


class InvalidRequestError(ScrapeError):
    error_code = ErrorCode.INVALID_REQUEST
    http_status = 400


class InvalidSelectorError(ScrapeError):
    error_code = ErrorCode.INVALID_SELECTOR
    http_status = 400


class NavigationTimeout(ScrapeError):
    error_code = ErrorCode.NAVIGATION_TIMEOUT
    http_status = 504


class NavigationError(ScrapeError):
    error_code = ErrorCode.NAVIGATION_ERROR
    http_status = 502


class BrowserLaunchError(ScrapeError):
    error_code = ErrorCode.BROWSER_LAUNCH


class UnsupportedFormatError(ScrapeError):
    error_code = ErrorCode.UNSUPPORTED_FORMAT
    http_status = 400


class FileSystemError(ScrapeError):
    error_code = ErrorCode.FILESYSTEM


class PersistenceUnavailableError(ScrapeError):
    error_code = ErrorCode.PERSISTENCE_UNAVAILABLE


class PersistenceError(ScrapeError):
    error_code = ErrorCode.PERSISTENCE

    def __init__(self, message: str, *, inserted: int = 0, attempted: int = 0) -> None:
        super().__init__(message)
        self.inserted = inserted
        self.attempted = attempted


class InvalidIdentifierError(ScrapeError):
    error_code = ErrorCode.INVALID_IDENTIFIER
    http_status = 400


class NoRowsError(ScrapeError):
    error_code = ErrorCode.NO_ROWS
    http_status = 400


class DuplicateJobError(ScrapeError):
    error_code = ErrorCode.DUPLICATE_JOB
    http_status = 400


class JobNotFoundError(ScrapeError):
    error_code = ErrorCode.JOB_NOT_FOUND
    http_status = 404


class JobTerminalError(ScrapeError):
    error_code = ErrorCode.JOB_TERMINAL
    http_status = 409


class JobNotReadyError(ScrapeError):
    error_code = ErrorCode.JOB_NOT_READY
    http_status = 409


__all__ = [
    "ErrorCode",
    "ScrapeError",
    "InvalidURLError",
    "InvalidRequestError",
    "InvalidSelectorError",
    "NavigationTimeout",
    "NavigationError",
    "BrowserLaunchError",
    "UnsupportedFormatError",
    "FileSystemError",
    "PersistenceUnavailableError",
    "PersistenceError",
    "InvalidIdentifierError",
    "NoRowsError",
    "DuplicateJobError",
    "JobNotFoundError",
    "JobTerminalError",
    "JobNotReadyError",
]
