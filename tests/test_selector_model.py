import pytest

from app.scraper import selector_model
from app.scraper.error_codes import ErrorCode, InvalidSelectorError
from app.scraper.selector_model import (
    AttributeSelector,
    HtmlSelector,
    ListSelector,
    TextSelector,
    parse_selector,
    parse_selector_set,
)


@pytest.mark.parametrize(
    "payload, expected_type",
    [
        ({"id": "a", "name": "A", "selector": "h1", "type": "text"}, TextSelector),
        ({"id": "a", "name": "A", "selector": "h1", "type": "html"}, HtmlSelector),
        ({"id": "a", "name": "A", "selector": "a", "type": "attribute", "attribute": "href"}, AttributeSelector),
        ({"id": "a", "name": "A", "selector": "ul", "type": "list", "listItemSelector": "li"}, ListSelector),
        ({"id": "a", "name": "A", "selector": "h1"}, TextSelector),
    ],
)
def test_parse_selector_variants(payload, expected_type) -> None:
    selector = parse_selector(payload)
    assert isinstance(selector, expected_type)
    assert selector.id == "a"


def test_attribute_without_attribute_name_rejected() -> None:
    with pytest.raises(InvalidSelectorError) as excinfo:
        parse_selector({"id": "a", "name": "A", "selector": "a", "type": "attribute"})
    assert excinfo.value.error_code == ErrorCode.INVALID_SELECTOR
    assert excinfo.value.http_status == 400


def test_list_without_item_selector_rejected() -> None:
    with pytest.raises(InvalidSelectorError):
        parse_selector({"id": "a", "name": "A", "selector": "ul", "type": "list"})


@pytest.mark.parametrize("css", ["", "   ", None])
def test_empty_css_selector_rejected(css) -> None:
    with pytest.raises(InvalidSelectorError):
        parse_selector({"id": "a", "name": "A", "selector": css})


def test_unknown_type_coerced_to_text_and_logged(monkeypatch) -> None:
    events: list[dict] = []
    monkeypatch.setattr(selector_model, "_scraper_event", lambda *a, **kw: events.append(kw))

    selector = parse_selector({"id": "a", "selector": "h1", "type": "json"})

    assert isinstance(selector, TextSelector)
    assert selector.name == "a"
    assert events and events[0]["kind"] == "unknown_type_coerced"


def test_selector_set_assigns_fallback_ids_and_rejects_duplicates() -> None:
    selectors = parse_selector_set([{"selector": "h1"}, {"selector": "p"}])
    assert [s.id for s in selectors] == ["selector_1", "selector_2"]

    with pytest.raises(InvalidSelectorError):
        parse_selector_set([{"id": "x", "selector": "h1"}, {"id": "x", "selector": "p"}])


def test_to_dict_uses_wire_names() -> None:
    selector = ListSelector(id="m", name="Menu", selector="ul", list_item_selector="li")
    assert selector.to_dict() == {
        "id": "m",
        "name": "Menu",
        "selector": "ul",
        "type": "list",
        "listItemSelector": "li",
    }
