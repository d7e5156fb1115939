"""Lightweight structured-data extraction from free-text answers.

The extracted payload is informational only: it is returned to the caller
alongside the validation result and never influences gating.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

_WHO = re.compile(
    r"\b(?:for|helps|users?|customers?|professionals?|people|teams?)\s+([^.,;]+)",
    re.IGNORECASE,
)
_WHAT = re.compile(
    r"\b(?:app|application|platform|tool|product|service|solution)\s+([^.,;]+)",
    re.IGNORECASE,
)
_WHY = re.compile(
    r"\b(?:because|to|for|benefit|improve|solve|help)\s+([^.,;]+)",
    re.IGNORECASE,
)
_PROBLEM = re.compile(
    r"\b(?:problem|issue|challenge|difficulty|struggle|pain\s+point)\s*:?\s*([^.,;]+)",
    re.IGNORECASE,
)
_AGE_RANGE = re.compile(r"(\d+)\s*-\s*(\d+)\s+year", re.IGNORECASE)
_ROLE = re.compile(
    r"\b(professionals?|developers?|managers?|students?|entrepreneurs?)\b",
    re.IGNORECASE,
)
_PERCENTAGE = re.compile(r"(\d+(?:\.\d+)?)%")
_CURRENCY = re.compile(r"\$(\d+(?:,\d{3})*(?:\.\d{2})?)")
_COUNT = re.compile(r"(\d+(?:,\d{3})*)\s+([a-zA-Z]+)")
_NON_WORD = re.compile(r"[^\w\s]")

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
        "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "can", "this", "that", "these", "those",
    }
)
MAX_KEYWORDS = 10


def extract_product_entities(text: str) -> Dict[str, List[str]]:
    return {
        "who": [match.group(1).strip() for match in _WHO.finditer(text)],
        "what": [match.group(1).strip() for match in _WHAT.finditer(text)],
        "why": [match.group(1).strip() for match in _WHY.finditer(text)],
    }


def extract_problems(text: str) -> List[str]:
    return [match.group(1).strip() for match in _PROBLEM.finditer(text)]


def extract_demographics(text: str) -> Dict[str, Any]:
    demographics: Dict[str, Any] = {}
    age = _AGE_RANGE.search(text)
    if age:
        demographics["age_range"] = f"{age.group(1)}-{age.group(2)}"
    roles = [match.lower() for match in _ROLE.findall(text)]
    if roles:
        demographics["roles"] = list(dict.fromkeys(roles))
    return demographics


def extract_metrics(text: str) -> List[Dict[str, str]]:
    metrics: List[Dict[str, str]] = []
    for match in _PERCENTAGE.finditer(text):
        metrics.append({"type": "percentage", "value": match.group(1)})
    for match in _CURRENCY.finditer(text):
        metrics.append({"type": "currency", "value": match.group(1)})
    for match in _COUNT.finditer(text):
        metrics.append(
            {"type": "count", "value": match.group(1), "unit": match.group(2)}
        )
    return metrics


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[Dict[str, Any]]:
    """Most frequent non-stop-words, ties kept in first-seen order."""

    words = [
        word
        for word in _NON_WORD.sub(" ", text.lower()).split()
        if len(word) > 2 and word not in STOP_WORDS
    ]
    return [
        {"word": word, "count": count}
        for word, count in Counter(words).most_common(limit)
    ]


_FIELD_EXTRACTORS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "productDescription": ("entities", extract_product_entities),
    "problemStatement": ("problems", extract_problems),
    "userNeeds": ("problems", extract_problems),
    "targetMarket": ("demographics", extract_demographics),
    "primaryUsers": ("demographics", extract_demographics),
    "successMetrics": ("metrics", extract_metrics),
    "kpis": ("metrics", extract_metrics),
}


def extract_answer_data(text: str, field_name: str) -> Dict[str, Any]:
    """Build the extraction payload returned with each processed answer."""

    payload: Dict[str, Any] = {
        "field_name": field_name,
        "content": text,
        "length": len(text),
        "word_count": len(text.split()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    key, extractor = _FIELD_EXTRACTORS.get(
        field_name, ("keywords", extract_keywords)
    )
    payload[key] = extractor(text)
    return payload
