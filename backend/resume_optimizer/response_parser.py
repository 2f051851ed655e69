"""Turn raw model output into the optimized resume body and a change summary.

Both extractors are total: when the model ignores the requested format they
degrade to a usable value instead of raising.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .prompts import START_MARKER, END_MARKER
from .schemas import ChangeSummary

logger = logging.getLogger(__name__)

DEFAULT_HEADLINE = "Resume optimized for job requirements"
DEFAULT_SUMMARY = "Enhanced resume with relevant keywords and improved phrasing."
FALLBACK_SUMMARY_CHARS = 200

PARSED = "parsed"
FALLBACK = "fallback"


@dataclass
class SummaryParse:
    kind: str  # parsed|fallback
    summary: ChangeSummary

    @property
    def parsed(self) -> bool:
        return self.kind == PARSED


def extract_optimized_text(raw: str) -> str:
    start = raw.find(START_MARKER)
    end = raw.find(END_MARKER, start + len(START_MARKER)) if start != -1 else -1
    if start != -1 and end != -1:
        return raw[start + len(START_MARKER):end].strip()
    logger.warning("Optimization markers not found in response, returning full text")
    return raw.strip()


def find_json_object(raw: str) -> Optional[str]:
    """First '{' through the last '}' in the text, or None."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end < start:
        return None
    return raw[start:end + 1]


def _keywords(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    seen = []
    for item in value:
        if item is None:
            continue
        kw = str(item).strip()
        if kw and kw not in seen:
            seen.append(kw)
    return seen


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def fallback_summary(raw: str) -> ChangeSummary:
    return ChangeSummary(
        headline=DEFAULT_HEADLINE,
        summary=raw[:FALLBACK_SUMMARY_CHARS],
        keywordsAdded=[],
    )


def parse_change_summary(raw: str) -> SummaryParse:
    candidate = find_json_object(raw)
    data = None
    if candidate is not None:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            data = None
    if not isinstance(data, dict):
        logger.warning("Could not parse JSON from changes summary, using fallback")
        return SummaryParse(FALLBACK, fallback_summary(raw))

    return SummaryParse(PARSED, ChangeSummary(
        headline=_text(data.get("headline"), DEFAULT_HEADLINE),
        summary=_text(data.get("summary"), DEFAULT_SUMMARY),
        keywordsAdded=_keywords(data.get("keywordsAdded")),
    ))


def extract_change_summary(raw: str) -> ChangeSummary:
    return parse_change_summary(raw).summary
