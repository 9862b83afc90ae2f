from __future__ import annotations

from pathlib import Path
import pytest

from app.scraper import config
from app.scraper import healthcheck
from tests.test_scraping_api import _configure_temp_paths


def test_run_health_checks_happy_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _configure_temp_paths(tmp_path, monkeypatch)
    monkeypatch.setattr(config, "MIN_FREE_MB", 0)

    result = healthcheck.run_health_checks(entrypoint="ui")
    assert result.ok is True
    assert result.checks["config"]["ok"] is True
    assert result.checks["filesystem"]["ok"] is True
    assert result.checks["database"] == {"ok": True, "enabled": True, "path": str(config.DB_PATH)}
    assert result.checks["browser"]["ok"] is True


def test_run_health_checks_handles_invalid_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _configure_temp_paths(tmp_path, monkeypatch)
    monkeypatch.setattr(config, "MIN_FREE_MB", -1)

    result = healthcheck.run_health_checks(entrypoint="cli")
    assert result.ok is False
    assert result.checks["config"]["ok"] is False


def test_persistence_disabled_is_healthy(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _configure_temp_paths(tmp_path, monkeypatch)
    monkeypatch.setattr(config, "MIN_FREE_MB", 0)
    monkeypatch.setattr(config, "DB_PATH", None)

    result = healthcheck.run_health_checks(entrypoint="ui")
    assert result.ok is True
    assert result.checks["database"] == {"ok": True, "enabled": False}


def test_unreachable_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _configure_temp_paths(tmp_path, monkeypatch)
    monkeypatch.setattr(config, "MIN_FREE_MB", 0)

    def _fail():
        raise RuntimeError("db error")

    monkeypatch.setattr(healthcheck.persistence, "get_connection", _fail)

    result = healthcheck.run_health_checks(entrypoint="ui")
    assert result.ok is False
    assert result.checks["database"]["ok"] is False
