"""Configuration constants for the scraping engine."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


def _parse_bool(env_var: str, default: bool) -> bool:
    """Parse a boolean flag from the environment (``0``/``false`` disable)."""

    raw = os.getenv(env_var)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


def _parse_float(env_var: str, default: float) -> float:
    try:
        return float(os.getenv(env_var, str(default)))
    except ValueError:
        return default


def _parse_db_path(env_var: str, default: Path) -> Optional[Path]:
    """Return the SQLite path, or ``None`` when persistence is switched off.

    An explicitly empty value disables the persistence adapter.
    """

    raw = os.getenv(env_var)
    if raw is None:
        return default
    raw = raw.strip()
    return Path(raw) if raw else None


DATA_DIR: Path = Path(os.getenv("SCRAPER_DATA_DIR", "data"))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
# Private export sink; public exports are served by the admin front-end.
EXPORT_DIR: Path = DATA_DIR / "scraping"
PUBLIC_EXPORT_DIR: Path = Path(os.getenv("SCRAPER_PUBLIC_DIR", "public/data"))
DB_PATH: Optional[Path] = _parse_db_path("SCRAPER_DB_PATH", DATA_DIR / "scraping.db")

MIN_FREE_MB: int = int(os.getenv("MIN_FREE_MB", "100"))

# Playwright timeouts (seconds)
# Navigation timeout for page.goto calls.
NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("SCRAPER_NAV_TIMEOUT_SECONDS", 30)
# Navigation triggered by clicks (pagination "next", login submit).
CLICK_NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds(
    "SCRAPER_CLICK_NAV_TIMEOUT_SECONDS", 30
)
# Default waitForSelector budget stays in milliseconds to match the request payloads.
DEFAULT_WAIT_TIMEOUT_MS: int = int(os.getenv("SCRAPER_WAIT_TIMEOUT_MS", "5000"))

PAGINATION_DELAY_SECONDS: float = _parse_float("SCRAPER_PAGINATION_DELAY_SECONDS", 1.0)
DEFAULT_MAX_PAGES: int = int(os.getenv("SCRAPER_DEFAULT_MAX_PAGES", "5"))

HEADLESS: bool = _parse_bool("SCRAPER_HEADLESS", True)
BROWSER_ARGS: list[str] = ["--no-sandbox", "--disable-setuid-sandbox"]

# Job registry retention
JOB_TTL_SECONDS: int = _parse_timeout_seconds("SCRAPER_JOB_TTL_SECONDS", 3600)
JOB_MAX_ENTRIES: int = int(os.getenv("SCRAPER_JOB_MAX_ENTRIES", "500"))

EXPORTS_KEEP_MAX: int = int(os.getenv("SCRAPER_EXPORTS_KEEP_MAX", "200"))
MAX_UPLOAD_BYTES: int = int(os.getenv("SCRAPER_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# Shared token for the /scraping routes; unset leaves them open.
API_TOKEN: Optional[str] = os.getenv("SCRAPER_API_TOKEN") or None

STEALTH_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

TEXT_BLOCK_MIN_LENGTH: int = 10


def persistence_enabled() -> bool:
    """Return True when a database path is configured."""

    return DB_PATH is not None


def auth_required() -> bool:
    """Return True if the scraping routes are gated by ``API_TOKEN``."""

    return bool(API_TOKEN)
