from app.scraper import logging_utils


def test_scraper_event_label_and_phase(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._scraper_event("state", phase="paginate", kind="summary")

    assert events
    line = events[-1]
    assert line.startswith("[SCRAPER][STATE]")
    assert "phase='paginate'" in line
    assert "kind='summary'" in line


def test_scraper_event_redacts_credentials(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._scraper_event("nav", password="hunter2", cookies="sid=abc", url="https://example.com")

    line = events[-1]
    assert "hunter2" not in line
    assert "sid=abc" not in line
    assert "password='***'" in line
    assert "url='https://example.com'" in line


def test_scraper_event_never_raises(monkeypatch):
    def _boom(_msg):
        raise OSError("disk full")

    monkeypatch.setattr(logging_utils, "log_line", _boom)

    logging_utils._scraper_event("error", phase="export", error="x")
