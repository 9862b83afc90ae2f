"""Extraction selector variants and their validation.

A selector is one of four frozen variants. Parsing a request payload is the
only place a ``type`` string is inspected; everything downstream dispatches on
the variant class.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Union

from .error_codes import InvalidSelectorError
from .logging_utils import _scraper_event


class SelectorType(str, Enum):
    TEXT = "text"
    HTML = "html"
    ATTRIBUTE = "attribute"
    LIST = "list"


@dataclass(frozen=True)
class TextSelector:
    id: str
    name: str
    selector: str

    type = SelectorType.TEXT

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "selector": self.selector, "type": self.type.value}


@dataclass(frozen=True)
class HtmlSelector:
    id: str
    name: str
    selector: str

    type = SelectorType.HTML

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "selector": self.selector, "type": self.type.value}


@dataclass(frozen=True)
class AttributeSelector:
    id: str
    name: str
    selector: str
    attribute: str

    type = SelectorType.ATTRIBUTE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "selector": self.selector,
            "type": self.type.value,
            "attribute": self.attribute,
        }


@dataclass(frozen=True)
class ListSelector:
    id: str
    name: str
    selector: str
    list_item_selector: str

    type = SelectorType.LIST

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "selector": self.selector,
            "type": self.type.value,
            "listItemSelector": self.list_item_selector,
        }


SelectorConfig = Union[TextSelector, HtmlSelector, AttributeSelector, ListSelector]

SELECTOR_VARIANTS: tuple[type, ...] = (TextSelector, HtmlSelector, AttributeSelector, ListSelector)


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _resolve_type(raw_type: Any, selector_id: str) -> SelectorType:
    """Map the payload ``type`` onto the closed variant set.

    A missing type means text. Unrecognised values are coerced to text as
    well, with an event so a misconfigured client is visible in the logs.
    """

    if raw_type is None or raw_type == "":
        return SelectorType.TEXT
    try:
        return SelectorType(str(raw_type).strip().lower())
    except ValueError:
        _scraper_event(
            "state",
            phase="selector",
            kind="unknown_type_coerced",
            selector_id=selector_id,
            requested=raw_type,
            coerced_to=SelectorType.TEXT.value,
        )
        return SelectorType.TEXT


def parse_selector(payload: Mapping[str, Any], *, fallback_id: str | None = None) -> SelectorConfig:
    """Build a selector variant from a request payload.

    Raises ``InvalidSelectorError`` when the CSS path is missing or when the
    sub-field required by the variant (``attribute`` / ``listItemSelector``)
    is absent.
    """

    if not isinstance(payload, Mapping):
        raise InvalidSelectorError("Invalid selector provided")

    css = _clean_str(payload.get("selector"))
    if not css:
        raise InvalidSelectorError("Invalid selector provided")

    selector_id = _clean_str(payload.get("id")) or (fallback_id or "")
    if not selector_id:
        raise InvalidSelectorError(f"Selector {css!r} is missing an id")
    name = _clean_str(payload.get("name")) or selector_id

    selector_type = _resolve_type(payload.get("type"), selector_id)

    if selector_type is SelectorType.ATTRIBUTE:
        attribute = _clean_str(payload.get("attribute"))
        if not attribute:
            raise InvalidSelectorError(
                f"Selector {selector_id!r} has type 'attribute' but no attribute name"
            )
        return AttributeSelector(id=selector_id, name=name, selector=css, attribute=attribute)

    if selector_type is SelectorType.LIST:
        item_selector = _clean_str(payload.get("listItemSelector"))
        if not item_selector:
            raise InvalidSelectorError(
                f"Selector {selector_id!r} has type 'list' but no listItemSelector"
            )
        return ListSelector(id=selector_id, name=name, selector=css, list_item_selector=item_selector)

    if selector_type is SelectorType.HTML:
        return HtmlSelector(id=selector_id, name=name, selector=css)

    return TextSelector(id=selector_id, name=name, selector=css)


def parse_selector_set(payloads: Iterable[Mapping[str, Any]] | None) -> list[SelectorConfig]:
    """Parse a target's selectors, enforcing unique ids within the set."""

    if payloads is None:
        return []
    if isinstance(payloads, (str, bytes)) or not isinstance(payloads, Iterable):
        raise InvalidSelectorError("selectors must be a list")

    selectors: list[SelectorConfig] = []
    seen: set[str] = set()
    for index, payload in enumerate(payloads):
        selector = parse_selector(payload, fallback_id=f"selector_{index + 1}")
        if selector.id in seen:
            raise InvalidSelectorError(f"Duplicate selector id {selector.id!r}")
        seen.add(selector.id)
        selectors.append(selector)
    return selectors


__all__ = [
    "SelectorType",
    "TextSelector",
    "HtmlSelector",
    "AttributeSelector",
    "ListSelector",
    "SelectorConfig",
    "SELECTOR_VARIANTS",
    "parse_selector",
    "parse_selector_set",
]
