"""Selector evaluation and content extraction over a page DOM snapshot.

Everything here works on HTML captured with ``page.content()`` and parsed
with BeautifulSoup, so evaluation can never mutate the live page.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from bs4 import BeautifulSoup, Tag

from . import config
from .error_codes import ErrorCode, InvalidSelectorError
from .logging_utils import _scraper_event
from .selector_model import (
    AttributeSelector,
    HtmlSelector,
    ListSelector,
    SelectorConfig,
    TextSelector,
)

Dom = Union[str, BeautifulSoup]

TEXT_BLOCK_TAGS = "p, h1, h2, h3, h4, h5, h6, span, div"
VIDEO_SELECTOR = 'video, iframe[src*="youtube"], iframe[src*="vimeo"]'


def as_dom(source: Dom) -> BeautifulSoup:
    if isinstance(source, BeautifulSoup):
        return source
    return BeautifulSoup(source or "", "html5lib")


def _text(element: Tag) -> str:
    return element.get_text().strip()


def _extract_text(dom: BeautifulSoup, selector: TextSelector) -> list[str]:
    return [_text(el) for el in dom.select(selector.selector)]


def _extract_html(dom: BeautifulSoup, selector: HtmlSelector) -> list[str]:
    return [str(el) for el in dom.select(selector.selector)]


def _extract_attribute(dom: BeautifulSoup, selector: AttributeSelector) -> list[Optional[str]]:
    values: list[Optional[str]] = []
    for el in dom.select(selector.selector):
        value = el.get(selector.attribute)
        if isinstance(value, list):
            # multi-valued attributes such as class
            value = " ".join(value)
        values.append(value)
    return values


def _extract_list(dom: BeautifulSoup, selector: ListSelector) -> list[str]:
    nested = [
        [_text(item) for item in el.select(selector.list_item_selector)]
        for el in dom.select(selector.selector)
    ]
    return [item for group in nested for item in group]


_EXTRACTORS: Dict[type, Callable[[BeautifulSoup, Any], list]] = {
    TextSelector: _extract_text,
    HtmlSelector: _extract_html,
    AttributeSelector: _extract_attribute,
    ListSelector: _extract_list,
}


def extract(source: Dom, selector: SelectorConfig) -> list:
    """Apply one selector and return its values (list output flattened one level)."""

    extractor = _EXTRACTORS.get(type(selector))
    if extractor is None:
        raise InvalidSelectorError(f"Unsupported selector variant {type(selector).__name__}")
    return extractor(as_dom(source), selector)


def extract_all(source: Dom, selectors: Sequence[SelectorConfig]) -> dict[str, Any]:
    """Run every selector; a failing one is recorded as ``{"error": message}``."""

    dom = as_dom(source)
    data: dict[str, Any] = {}
    for selector in selectors:
        try:
            data[selector.id] = extract(dom, selector)
        except Exception as exc:  # noqa: BLE001
            _scraper_event(
                "error",
                phase="extract",
                error_code=ErrorCode.EXTRACTION,
                selector_id=selector.id,
                selector_name=selector.name,
                error=str(exc),
            )
            data[selector.id] = {"error": str(exc)}
    return data


def merge_page_data(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    """Append values from a later page; error entries on either side are kept as-is."""

    merged = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        if isinstance(current, list) and isinstance(value, list):
            merged[key] = current + value
        elif key not in merged:
            merged[key] = value
    return merged


def extract_text_blocks(source: Dom, *, min_length: int | None = None) -> list[str]:
    """Return trimmed texts of text-bearing elements longer than ``min_length``."""

    threshold = config.TEXT_BLOCK_MIN_LENGTH if min_length is None else min_length
    blocks: list[str] = []
    for el in as_dom(source).select(TEXT_BLOCK_TAGS):
        text = _text(el)
        if text and len(text) > threshold:
            blocks.append(text)
    return blocks


@dataclass
class PageMetadata:
    title: str = ""
    description: str = ""
    keywords: List[str] = field(default_factory=list)


def extract_page_metadata(source: Dom, *, title: Optional[str] = None) -> PageMetadata:
    dom = as_dom(source)
    if title is None:
        title = dom.title.get_text().strip() if dom.title else ""

    description = ""
    desc_tag = dom.select_one('meta[name="description"]')
    if desc_tag is not None:
        description = str(desc_tag.get("content") or "")

    keywords: list[str] = []
    kw_tag = dom.select_one('meta[name="keywords"]')
    if kw_tag is not None:
        keywords = [kw.strip() for kw in str(kw_tag.get("content") or "").split(",") if kw.strip()]

    return PageMetadata(title=title, description=description, keywords=keywords)


@dataclass(frozen=True)
class ContentOptions:
    scrape_text: bool = True
    scrape_images: bool = False
    scrape_videos: bool = False
    skip_headers_footers: bool = False
    skip_media: bool = False


@dataclass
class ContentBundle:
    text: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    videos: List[str] = field(default_factory=list)
    tables: List[List[List[str]]] = field(default_factory=list)
    lists: List[List[str]] = field(default_factory=list)

    def total_elements(self) -> int:
        return len(self.text) + len(self.images) + len(self.videos) + len(self.tables) + len(self.lists)

    def to_dict(self) -> dict[str, list]:
        return {
            "text": list(self.text),
            "images": list(self.images),
            "videos": list(self.videos),
            "tables": [list(t) for t in self.tables],
            "lists": [list(li) for li in self.lists],
        }


def extract_content(html: str, options: ContentOptions) -> ContentBundle:
    """Collect the job content bundle from a page snapshot."""

    dom = as_dom(html)
    if options.skip_headers_footers:
        for el in dom.select("header, footer, nav"):
            el.decompose()
    if options.skip_media:
        for el in dom.select("img, video, audio, iframe"):
            el.decompose()

    bundle = ContentBundle()
    if options.scrape_text:
        bundle.text = extract_text_blocks(dom)

    if options.scrape_images:
        for img in dom.select("img"):
            src = img.get("src")
            if src and not src.startswith("data:"):
                bundle.images.append(src)

    if options.scrape_videos:
        for el in dom.select(VIDEO_SELECTOR):
            src = el.get("src")
            if src:
                bundle.videos.append(src)

    for table in dom.select("table"):
        rows = []
        for row in table.select("tr"):
            cells = [_text(cell) for cell in row.select("th, td")]
            if cells:
                rows.append(cells)
        if rows:
            bundle.tables.append(rows)

    for list_el in dom.select("ul, ol"):
        items = [_text(li) for li in list_el.select("li")]
        items = [item for item in items if item]
        if items:
            bundle.lists.append(items)

    return bundle


__all__ = [
    "as_dom",
    "extract",
    "extract_all",
    "merge_page_data",
    "extract_text_blocks",
    "extract_page_metadata",
    "extract_content",
    "PageMetadata",
    "ContentOptions",
    "ContentBundle",
]
