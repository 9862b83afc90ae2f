"""Request/response models for batch scraping."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .error_codes import InvalidRequestError
from .selector_model import SelectorConfig, parse_selector_set
from .utils import utc_now_iso


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int

    def to_playwright(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class ScrapeOptions:
    headers: Dict[str, str] = field(default_factory=dict)
    method: str = "GET"
    body: Optional[str] = None
    wait_for_selector: Optional[str] = None
    wait_timeout_ms: int = config.DEFAULT_WAIT_TIMEOUT_MS
    enable_javascript: bool = True
    follow_redirects: bool = True
    max_depth: int = 0
    next_page_selector: Optional[str] = None
    throttle_ms: int = 0
    proxy: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    cookies: Optional[str] = None
    capture_screenshot: bool = False
    device: Optional[str] = None
    viewport: Optional[Viewport] = None
    user_agent: Optional[str] = None
    # Overrides the readiness condition otherwise derived from enable_javascript.
    wait_until: Optional[str] = None

    @property
    def paginate(self) -> bool:
        return bool(self.next_page_selector) and self.max_depth > 0


@dataclass(frozen=True)
class ScrapeTarget:
    url: str
    selectors: List[SelectorConfig] = field(default_factory=list)
    options: ScrapeOptions = field(default_factory=ScrapeOptions)


@dataclass
class ResultMetadata:
    page_title: str = ""
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    response_time_ms: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pageTitle": self.page_title,
            "statusCode": self.status_code,
            "contentType": self.content_type,
            "responseTime": self.response_time_ms,
        }


@dataclass
class ScrapingResult:
    url: str
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)
    metadata: Optional[ResultMetadata] = None
    screenshot: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, url: Any, error: str) -> "ScrapingResult":
        return cls(url=url if isinstance(url, str) else str(url or ""), success=False, data={}, error=error)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "timestamp": self.timestamp,
            "success": self.success,
            "data": self.data,
        }
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        if self.screenshot is not None:
            payload["screenshot"] = self.screenshot
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _as_int(value: Any, default: int, *, name: str, minimum: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return max(minimum, int(value))
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError(f"options.{name} must be an integer") from exc


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no", "off", ""}
    return bool(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_viewport(value: Any) -> Optional[Viewport]:
    if not value:
        return None
    if not isinstance(value, Mapping):
        raise InvalidRequestError("options.viewport must be an object")
    width = _as_int(value.get("width"), 0, name="viewport.width", minimum=1)
    height = _as_int(value.get("height"), 0, name="viewport.height", minimum=1)
    if not width or not height:
        raise InvalidRequestError("options.viewport requires width and height")
    return Viewport(width=width, height=height)


def parse_options(payload: Any) -> ScrapeOptions:
    """Translate the camelCase options object of a target into ``ScrapeOptions``."""

    if payload is None:
        return ScrapeOptions()
    if not isinstance(payload, Mapping):
        raise InvalidRequestError("options must be an object")

    headers_raw = payload.get("headers") or {}
    if not isinstance(headers_raw, Mapping):
        raise InvalidRequestError("options.headers must be an object")
    headers = {str(k): str(v) for k, v in headers_raw.items() if v is not None}

    body = payload.get("body")
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)

    return ScrapeOptions(
        headers=headers,
        method=(_as_optional_str(payload.get("method")) or "GET").upper(),
        body=body,
        wait_for_selector=_as_optional_str(payload.get("waitForSelector")),
        wait_timeout_ms=_as_int(
            payload.get("waitTimeout"), config.DEFAULT_WAIT_TIMEOUT_MS, name="waitTimeout", minimum=1
        ),
        enable_javascript=_as_bool(payload.get("enableJavaScript"), True),
        follow_redirects=_as_bool(payload.get("followRedirects"), True),
        max_depth=_as_int(payload.get("maxDepth"), 0, name="maxDepth"),
        next_page_selector=_as_optional_str(payload.get("nextPageSelector")),
        throttle_ms=_as_int(payload.get("throttle"), 0, name="throttle"),
        proxy=_as_optional_str(payload.get("proxy")),
        proxy_username=_as_optional_str(payload.get("proxyUsername")),
        proxy_password=_as_optional_str(payload.get("proxyPassword")),
        cookies=_as_optional_str(payload.get("cookies")),
        capture_screenshot=_as_bool(payload.get("captureScreenshot"), False),
        device=_as_optional_str(payload.get("device")),
        viewport=parse_viewport(payload.get("viewport")),
        user_agent=_as_optional_str(payload.get("userAgent")),
    )


def parse_target(payload: Any) -> ScrapeTarget:
    """Build a ``ScrapeTarget``; URL validity is checked later, per target."""

    if not isinstance(payload, Mapping):
        raise InvalidRequestError("Each target must be an object")
    url = payload.get("url")
    return ScrapeTarget(
        url=url.strip() if isinstance(url, str) else url,
        selectors=parse_selector_set(payload.get("selectors")),
        options=parse_options(payload.get("options")),
    )


def parse_results(payload: Any) -> list[dict[str, Any]]:
    """Validate the ``results`` array posted back for export/persistence."""

    if not isinstance(payload, list):
        raise InvalidRequestError("Invalid results provided")
    if not all(isinstance(item, Mapping) for item in payload):
        raise InvalidRequestError("Invalid results provided")
    for item in payload:
        if item.get("data") is not None and not isinstance(item["data"], Mapping):
            raise InvalidRequestError("Result data must be an object")
    return [dict(item) for item in payload]


__all__ = [
    "Viewport",
    "ScrapeOptions",
    "ScrapeTarget",
    "ResultMetadata",
    "ScrapingResult",
    "parse_options",
    "parse_target",
    "parse_results",
    "parse_viewport",
]
