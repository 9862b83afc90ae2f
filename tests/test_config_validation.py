from app.scraper import config
from app.scraper.config_validation import validate_runtime_config
import pytest


def test_min_free_mb_negative(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "MIN_FREE_MB", -5)
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


@pytest.mark.parametrize(
    "field_name",
    ["NAV_TIMEOUT_SECONDS", "CLICK_NAV_TIMEOUT_SECONDS", "DEFAULT_WAIT_TIMEOUT_MS", "JOB_TTL_SECONDS"],
)
def test_invalid_timeout(monkeypatch: pytest.MonkeyPatch, field_name: str) -> None:
    monkeypatch.setattr(config, field_name, 0)
    with pytest.raises(ValueError):
        validate_runtime_config("ui")


def test_negative_pagination_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "PAGINATION_DELAY_SECONDS", -1.0)
    with pytest.raises(ValueError):
        validate_runtime_config("tests")


def test_soft_limits_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "JOB_MAX_ENTRIES", 0)
    monkeypatch.setattr(config, "EXPORTS_KEEP_MAX", -3)
    monkeypatch.setattr(config, "DEFAULT_MAX_PAGES", 0)

    validate_runtime_config("tests")

    assert config.JOB_MAX_ENTRIES == 1
    assert config.EXPORTS_KEEP_MAX == 1
    assert config.DEFAULT_MAX_PAGES == 1
