"""URL list extraction from uploaded json/csv/text files."""
from __future__ import annotations

import csv
import io
import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Union

from .error_codes import InvalidRequestError
from .logging_utils import _scraper_event
from .utils import is_valid_url

_HTTP_PREFIX = re.compile(r"^https?://", re.IGNORECASE)


@dataclass
class UrlUploadResult:
    valid_urls: List[str] = field(default_factory=list)
    invalid_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "validUrls": self.valid_urls,
            "invalidUrls": self.invalid_urls,
            "totalValid": len(self.valid_urls),
            "totalInvalid": len(self.invalid_urls),
        }


def _urls_from_json(node: Any, found: List[str]) -> None:
    if isinstance(node, str):
        if _HTTP_PREFIX.match(node):
            found.append(node)
    elif isinstance(node, list):
        for item in node:
            _urls_from_json(item, found)
    elif isinstance(node, dict):
        for value in node.values():
            _urls_from_json(value, found)


def _urls_from_csv(text: str) -> List[str]:
    urls: List[str] = []
    for row in csv.reader(io.StringIO(text)):
        if not row:
            continue
        candidate = row[0].strip().replace('"', "").replace("'", "")
        if candidate and _HTTP_PREFIX.match(candidate):
            urls.append(candidate)
    return urls


def _urls_from_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if _HTTP_PREFIX.match(line.strip())]


def parse_url_file(filename: str, content: Union[bytes, str]) -> UrlUploadResult:
    """Collect http(s) URLs from an upload and split them into valid/invalid.

    ``.json`` files are searched recursively for string values, ``.csv`` files
    contribute their first column, anything else is read one URL per line.
    """

    if isinstance(content, bytes):
        text = content.decode("utf-8-sig", errors="replace")
    else:
        text = content
    name = (filename or "").lower()

    if name.endswith(".json"):
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise InvalidRequestError(f"Uploaded JSON could not be parsed: {exc}") from exc
        candidates: List[str] = []
        _urls_from_json(payload, candidates)
    elif name.endswith(".csv"):
        candidates = _urls_from_csv(text)
    else:
        candidates = _urls_from_lines(text)

    result = UrlUploadResult()
    for url in candidates:
        (result.valid_urls if is_valid_url(url) else result.invalid_urls).append(url)
    _scraper_event(
        "state",
        phase="upload",
        filename=filename,
        valid=len(result.valid_urls),
        invalid=len(result.invalid_urls),
    )
    return result


__all__ = ["UrlUploadResult", "parse_url_file"]
