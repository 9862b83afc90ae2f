"""Post-processing attachment point for scrape jobs.

An external AI/NLP service is expected to implement ``ContentAnalyzer``. The
default analyser only derives fields that follow directly from the scraped
content; service-only fields (sentiment, entities, categories) stay unset.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from .jobs import ScrapeJob
from .logging_utils import _scraper_event

SUMMARY_BLOCKS = 3
SUMMARY_MAX_CHARS = 500
CLEANED_TEXT_MAX_CHARS = 1000
MAX_KEYWORDS = 10
MAX_SECTIONS = 5

_WORD = re.compile(r"[A-Za-z][A-Za-z'-]{3,}")
_STOPWORDS = frozenset(
    """
    about above after again against also been before being below between both
    could does doing down during each from further have having here into itself
    just more most other over same should some such than that their theirs them
    then there these they this those through under until very were what when
    where which while will with would your yours
    """.split()
)


@dataclass(frozen=True)
class AnalysisOptions:
    perform_sentiment_analysis: bool = False
    extract_entities: bool = False
    generate_summary: bool = False
    extract_keywords: bool = False
    categorize_content: bool = False
    extract_structured_data: bool = False
    cleaning_level: Optional[str] = None


def parse_analysis_options(payload: Any) -> AnalysisOptions:
    if not isinstance(payload, Mapping):
        return AnalysisOptions()
    cleaning = payload.get("cleaningLevel")
    return AnalysisOptions(
        perform_sentiment_analysis=bool(payload.get("performSentimentAnalysis")),
        extract_entities=bool(payload.get("extractEntities") or payload.get("performNER")),
        generate_summary=bool(payload.get("generateSummary")),
        extract_keywords=bool(payload.get("extractKeywords")),
        categorize_content=bool(payload.get("categorizeContent")),
        extract_structured_data=bool(payload.get("extractStructuredData")),
        cleaning_level=str(cleaning) if cleaning else None,
    )


class ContentAnalyzer(Protocol):
    def analyze(self, job: ScrapeJob, options: AnalysisOptions) -> dict[str, Any]:
        ...


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def top_keywords(texts: list[str], limit: int = MAX_KEYWORDS) -> list[str]:
    counts: Counter[str] = Counter()
    for text in texts:
        for word in _WORD.findall(text.lower()):
            if word not in _STOPWORDS:
                counts[word] += 1
    # Ties resolve alphabetically so output is stable.
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [word for word, _ in ranked[:limit]]


class BasicContentAnalyzer:
    """Derives summary, keywords, structured data and cleaned text from a job."""

    def analyze(self, job: ScrapeJob, options: AnalysisOptions) -> dict[str, Any]:
        texts: list[str] = list(job.data.get("text", []))
        analysis: dict[str, Any] = {}

        if options.generate_summary:
            analysis["summary"] = _truncate(" ".join(texts[:SUMMARY_BLOCKS]), SUMMARY_MAX_CHARS)

        if options.extract_keywords:
            analysis["keywords"] = list(job.metadata.get("pageKeywords") or []) or top_keywords(texts)

        if options.extract_structured_data:
            analysis["structuredData"] = {
                "title": job.metadata.get("pageTitle", ""),
                "description": job.metadata.get("pageDescription", ""),
                "mainContent": " ".join(texts[:SUMMARY_BLOCKS]),
                "contentSections": [
                    {"title": f"Section {index}", "content": text}
                    for index, text in enumerate(texts[:MAX_SECTIONS], start=1)
                ],
            }

        if options.cleaning_level:
            analysis["cleanedText"] = _truncate("\n\n".join(texts), CLEANED_TEXT_MAX_CHARS)

        unavailable = [
            name
            for name, wanted in (
                ("sentiment", options.perform_sentiment_analysis),
                ("entities", options.extract_entities),
                ("categories", options.categorize_content),
            )
            if wanted
        ]
        if unavailable:
            _scraper_event(
                "state",
                phase="analysis",
                job_id=job.id,
                kind="fields_require_service",
                fields=unavailable,
            )
        return analysis


__all__ = [
    "AnalysisOptions",
    "ContentAnalyzer",
    "BasicContentAnalyzer",
    "parse_analysis_options",
    "top_keywords",
]
