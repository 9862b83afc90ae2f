from __future__ import annotations

import importlib.util
from dataclasses import dataclass
from typing import Any

from . import config, persistence
from .config_validation import validate_runtime_config
from .logging_utils import _scraper_event
from .utils import disk_has_room, ensure_dirs, log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "checks": self.checks}


def run_health_checks(entrypoint: str = "cli") -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}

    try:
        validate_runtime_config(entrypoint or "cli", mode=None)
        checks["config"] = {"ok": True}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    try:
        ensure_dirs()
        fs_ok = disk_has_room(config.MIN_FREE_MB, config.DATA_DIR)
        checks["filesystem"] = {
            "ok": fs_ok,
            "data_dir": str(config.DATA_DIR),
            "min_free_mb": config.MIN_FREE_MB,
        }
    except OSError as exc:
        checks["filesystem"] = {"ok": False, "error": str(exc)}

    if not config.persistence_enabled():
        checks["database"] = {"ok": True, "enabled": False}
    else:
        try:
            conn = persistence.get_connection()
            try:
                conn.execute("SELECT 1")
            finally:
                conn.close()
            checks["database"] = {"ok": True, "enabled": True, "path": str(config.DB_PATH)}
        except Exception as exc:  # noqa: BLE001
            checks["database"] = {"ok": False, "enabled": True, "error": str(exc)}

    checks["browser"] = {"ok": importlib.util.find_spec("playwright") is not None}

    overall_ok = all(check.get("ok", False) for check in checks.values())

    try:
        _scraper_event(
            "state" if overall_ok else "error",
            phase="health",
            context="healthcheck",
            ok=overall_ok,
            checks=checks,
        )
    except Exception:  # noqa: BLE001
        pass

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="cli")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
