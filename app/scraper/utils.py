from __future__ import annotations

import logging
import re
import shutil
import sys
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from . import config

LOGGER = logging.getLogger("scraper")
_LOGGER_INITIALISED = False

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _configure_logger(log_path: Path) -> None:
    """Configure the shared application logger to write to ``log_path``."""

    global _LOGGER_INITIALISED

    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    LOGGER.setLevel(logging.INFO)
    LOGGER.addHandler(stream_handler)
    LOGGER.addHandler(file_handler)
    LOGGER.propagate = False

    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    """Initialise the logger lazily using the default log file."""

    if _LOGGER_INITIALISED:
        return
    _configure_logger(config.LOG_FILE)


def ensure_dirs() -> None:
    """Ensure that the data, log and export directories exist."""

    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    config.EXPORT_DIR.mkdir(parents=True, exist_ok=True)
    config.PUBLIC_EXPORT_DIR.mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.info(message)


def disk_has_room(min_free_mb: int, path: Path) -> bool:
    """Return True if the filesystem holding ``path`` has ``min_free_mb`` free."""

    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return False
    return usage.free >= min_free_mb * 1024 * 1024


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with milliseconds."""

    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def is_valid_url(value: object) -> bool:
    """Return True if ``value`` is an absolute http(s) URL with a host."""

    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc) and bool(parsed.hostname)


def sanitize_filename(name: str) -> str:
    """
    Return a filesystem-safe export basename derived from *name*.
    Every character outside ``[a-z0-9]`` becomes ``_``; the result is lowercased.
    """

    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name.strip()).lower()
    return cleaned or "file"


def generate_filename(url: str | None) -> str:
    """Build ``scraping_<host>_<timestamp>`` for exports without a caller name."""

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    host = ""
    if url and is_valid_url(url):
        host = (urlparse(url).hostname or "").replace(".", "_")
    if host:
        return sanitize_filename(f"scraping_{host}_{timestamp}")
    return sanitize_filename(f"scraping_data_{timestamp}")


__all__ = [
    "ensure_dirs",
    "log_line",
    "disk_has_room",
    "utc_now_iso",
    "is_valid_url",
    "sanitize_filename",
    "generate_filename",
]
