from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _scraper_event
from .utils import log_line

Entrypoint = Literal["ui", "cli", "tests"]


def _raise_config_error(
    message: str, *, entrypoint: Entrypoint, error: str, mode: str | None
) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
        mode=mode,
    )
    mode_fragment = f", mode={mode}" if mode else ""
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint}{mode_fragment})")
    raise ValueError(message)


def _clamp_to_one(field_name: str, *, entrypoint: Entrypoint, mode: str | None) -> None:
    value = getattr(config, field_name)
    if value >= 1:
        return
    _scraper_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field_name,
        value=value,
        adjusted=1,
        entrypoint=entrypoint,
        mode=mode,
    )
    log_line(f"[CONFIG] {field_name} < 1; clamping to 1.")
    setattr(config, field_name, 1)


def validate_runtime_config(entrypoint: Entrypoint, *, mode: str | None = None) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Soft limits (job registry size, export retention) are clamped and logged.
    """

    if config.MIN_FREE_MB < 0:
        _raise_config_error(
            "MIN_FREE_MB must be non-negative.",
            entrypoint=entrypoint,
            error="min_free_mb_invalid",
            mode=mode,
        )

    timeout_fields = [
        ("NAV_TIMEOUT_SECONDS", config.NAV_TIMEOUT_SECONDS),
        ("CLICK_NAV_TIMEOUT_SECONDS", config.CLICK_NAV_TIMEOUT_SECONDS),
        ("DEFAULT_WAIT_TIMEOUT_MS", config.DEFAULT_WAIT_TIMEOUT_MS),
        ("JOB_TTL_SECONDS", config.JOB_TTL_SECONDS),
    ]

    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
                mode=mode,
            )

    if config.PAGINATION_DELAY_SECONDS < 0:
        _raise_config_error(
            "PAGINATION_DELAY_SECONDS must be non-negative.",
            entrypoint=entrypoint,
            error="invalid_delay",
            mode=mode,
        )

    for field_name in ("JOB_MAX_ENTRIES", "EXPORTS_KEEP_MAX", "DEFAULT_MAX_PAGES"):
        _clamp_to_one(field_name, entrypoint=entrypoint, mode=mode)


__all__ = ["validate_runtime_config", "Entrypoint"]
