from app.scraper import extraction
from app.scraper.extraction import (
    ContentOptions,
    extract,
    extract_all,
    extract_content,
    extract_page_metadata,
    extract_text_blocks,
    merge_page_data,
)
from app.scraper.selector_model import SELECTOR_VARIANTS, AttributeSelector, HtmlSelector, ListSelector, TextSelector
from tests.scraping_fakes import EXAMPLE_HTML


def test_text_selector_trims_matches() -> None:
    assert extract(EXAMPLE_HTML, TextSelector(id="t", name="t", selector="h1.title")) == ["Example Title"]


def test_html_selector_returns_outer_html() -> None:
    values = extract(EXAMPLE_HTML, HtmlSelector(id="h", name="h", selector="h1"))
    assert values == ['<h1 class="title">Example Title</h1>']


def test_attribute_selector_keeps_missing_as_none() -> None:
    values = extract(EXAMPLE_HTML, AttributeSelector(id="a", name="a", selector="a.link", attribute="href"))
    assert values == ["/one", "/two", None]


def test_attribute_selector_joins_multi_valued_attributes() -> None:
    values = extract(EXAMPLE_HTML, AttributeSelector(id="a", name="a", selector="a", attribute="class"))
    assert values[0] == "link primary"


def test_list_selector_flattens_one_level() -> None:
    values = extract(EXAMPLE_HTML, ListSelector(id="l", name="l", selector="ul.menu", list_item_selector="li"))
    assert values == ["Home", "About", "Contact"]


def test_no_match_returns_empty_list() -> None:
    assert extract(EXAMPLE_HTML, TextSelector(id="t", name="t", selector=".missing")) == []


def test_failing_selector_is_embedded_as_error(monkeypatch) -> None:
    events: list[dict] = []
    monkeypatch.setattr(extraction, "_scraper_event", lambda *a, **kw: events.append(kw))
    selectors = [
        TextSelector(id="title", name="Title", selector="h1"),
        TextSelector(id="broken", name="Broken", selector="h1[[["),
    ]

    data = extract_all(EXAMPLE_HTML, selectors)

    assert data["title"] == ["Example Title"]
    assert set(data["broken"]) == {"error"}
    assert events[0]["selector_id"] == "broken"


def test_merge_page_data_appends_lists_and_keeps_errors() -> None:
    merged = merge_page_data(
        {"items": ["a"], "bad": {"error": "boom"}},
        {"items": ["b"], "bad": ["x"], "new": ["n"]},
    )
    assert merged == {"items": ["a", "b"], "bad": {"error": "boom"}, "new": ["n"]}


def test_text_blocks_require_more_than_min_length() -> None:
    html = "<p>short</p><p>exactly 10</p><p>this is long enough</p>"
    assert extract_text_blocks(html) == ["this is long enough"]


def test_page_metadata() -> None:
    meta = extract_page_metadata(EXAMPLE_HTML)
    assert meta.title == "Example Domain"
    assert meta.description == "An example page"
    assert meta.keywords == ["alpha", "beta", "gamma"]


def test_content_bundle_honours_toggles() -> None:
    bundle = extract_content(
        EXAMPLE_HTML,
        ContentOptions(scrape_text=True, scrape_images=True, scrape_videos=True, skip_headers_footers=True),
    )

    assert "Site navigation header text" not in bundle.text
    assert "Copyright footer text here" not in bundle.text
    assert bundle.images == ["/logo.png"]
    assert bundle.videos == ["https://www.youtube.com/embed/xyz"]
    assert bundle.tables == [[["Name", "Age"], ["Ada", "36"]]]
    assert bundle.lists == [["Home", "About"], ["Contact"]]
    assert bundle.total_elements() == len(bundle.text) + 1 + 1 + 1 + 2


def test_skip_media_drops_images_and_videos() -> None:
    bundle = extract_content(
        EXAMPLE_HTML, ContentOptions(scrape_images=True, scrape_videos=True, skip_media=True)
    )
    assert bundle.images == []
    assert bundle.videos == []


def test_every_selector_variant_has_an_extractor() -> None:
    assert set(extraction._EXTRACTORS) == set(SELECTOR_VARIANTS)
