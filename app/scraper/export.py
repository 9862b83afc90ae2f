"""File export of scraping results (json, csv, xml, excel, text)."""
from __future__ import annotations

import csv
import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

import pandas as pd

from . import config
from .error_codes import FileSystemError, UnsupportedFormatError
from .logging_utils import _scraper_event
from .utils import generate_filename, sanitize_filename

EXTENSIONS: Dict[str, str] = {
    "json": "json",
    "csv": "csv",
    "xml": "xml",
    "excel": "xlsx",
    "text": "txt",
}
EXCEL_SHEET_NAME = "Scraped Data"

_XML_NAME_INVALID = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class ExportResult:
    file_path: str
    format: str

    def to_dict(self) -> dict[str, Any]:
        return {"filePath": self.file_path, "format": self.format}


def _json_cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def flatten_row(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten one level of nesting into ``parent_child`` keys.

    Lists and deeper values are JSON-encoded so every cell is a scalar.
    """

    flat: Dict[str, Any] = {}
    for key, value in item.items():
        if isinstance(value, dict):
            for child, child_value in value.items():
                flat[f"{key}_{child}"] = _json_cell(child_value)
        else:
            flat[key] = _json_cell(value)
    return flat


def _flatten_rows(results: Sequence[Dict[str, Any]]) -> tuple[list[dict[str, Any]], list[str]]:
    rows = [flatten_row(item) for item in results]
    columns: list[str] = []
    seen: set[str] = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return rows, columns


def _write_json(path: Path, results: Sequence[Dict[str, Any]]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(list(results), handle, indent=2, ensure_ascii=False)


def _write_csv(path: Path, results: Sequence[Dict[str, Any]]) -> None:
    rows, columns = _flatten_rows(results)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=columns, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def _write_excel(path: Path, results: Sequence[Dict[str, Any]]) -> None:
    rows, columns = _flatten_rows(results)
    df = pd.DataFrame(rows, columns=columns)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=EXCEL_SHEET_NAME)


def xml_name(key: Any) -> str:
    """Turn an arbitrary key into a valid XML element name."""

    name = _XML_NAME_INVALID.sub("_", str(key)) or "field"
    if not (name[0].isalpha() or name[0] == "_") or name.lower().startswith("xml"):
        name = f"_{name}"
    return name


def _xml_value(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        for item in value:
            _xml_value(parent, tag, item)
        return
    element = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, child in value.items():
            _xml_value(element, xml_name(key), child)
    elif value is None:
        return
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)


def _write_xml(path: Path, results: Sequence[Dict[str, Any]]) -> None:
    root = ET.Element("root")
    for item in results:
        _xml_value(root, "item", dict(item))
    tree = ET.ElementTree(root)
    ET.indent(tree)
    tree.write(path, encoding="utf-8", xml_declaration=True)


def _write_text(path: Path, results: Sequence[Dict[str, Any]]) -> None:
    lines: list[str] = []
    for index, item in enumerate(results, start=1):
        lines.append(f"--- Item {index} ---")
        for key, value in item.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, ensure_ascii=False)
            lines.append(f"{key}: {value}")
        lines.append("")
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


_WRITERS: Dict[str, Callable[[Path, Sequence[Dict[str, Any]]], None]] = {
    "json": _write_json,
    "csv": _write_csv,
    "xml": _write_xml,
    "excel": _write_excel,
    "text": _write_text,
}


def prune_old_exports(directory: Optional[Path] = None, keep: Optional[int] = None) -> int:
    """Delete the oldest export files beyond ``keep``; returns how many went."""

    directory = directory or config.EXPORT_DIR
    keep = config.EXPORTS_KEEP_MAX if keep is None else keep
    if not directory.is_dir():
        return 0
    files = sorted(
        (p for p in directory.iterdir() if p.is_file()),
        key=lambda p: (p.stat().st_mtime, p.name),
    )
    removed = 0
    while len(files) > keep:
        old = files.pop(0)
        try:
            old.unlink()
            removed += 1
        except OSError as exc:
            _scraper_event("error", phase="export", step="prune", path=str(old), error=str(exc))
    return removed


def export_results(
    results: Sequence[Dict[str, Any]],
    fmt: str,
    filename: Optional[str] = None,
    save_to_public: bool = False,
) -> ExportResult:
    """Write ``results`` to the private (or public) export directory.

    ``filename`` is sanitised before use, so the file can only land directly
    inside one of the two export directories.
    """

    fmt = (fmt or "json").strip().lower()
    writer = _WRITERS.get(fmt)
    if writer is None:
        raise UnsupportedFormatError(f"Unsupported export format: {fmt}")

    if filename:
        stem = sanitize_filename(filename)
    else:
        first_url = results[0].get("url") if results else None
        stem = generate_filename(first_url if isinstance(first_url, str) else "")

    base_dir = config.PUBLIC_EXPORT_DIR if save_to_public else config.EXPORT_DIR
    path = base_dir / f"{stem}.{EXTENSIONS[fmt]}"
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
        writer(path, results)
    except OSError as exc:
        _scraper_event("error", phase="export", format=fmt, path=str(path), error=str(exc))
        raise FileSystemError(f"Failed to write export {path.name}: {exc}") from exc

    if not save_to_public:
        prune_old_exports(base_dir)
    _scraper_event("state", phase="export", format=fmt, path=str(path), rows=len(results))
    return ExportResult(file_path=path.as_posix(), format=fmt)


__all__ = [
    "EXTENSIONS",
    "ExportResult",
    "export_results",
    "flatten_row",
    "prune_old_exports",
    "xml_name",
]
