"""Heuristic multi-dimensional quality scoring for free-text answers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

from .patterns import (
    RELEVANCE_TABLES,
    SCORING_PATTERNS,
    RelevanceTables,
    ScoringPatterns,
    count_matches,
)

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


@dataclass(frozen=True, slots=True)
class DimensionWeights:
    """Relative weight of each scoring dimension; the four sum to 1.0."""

    completeness: float
    specificity: float
    relevance: float
    clarity: float

    def total(self) -> float:
        return self.completeness + self.specificity + self.relevance + self.clarity

    def to_dict(self) -> Dict[str, float]:
        return {
            "completeness": self.completeness,
            "specificity": self.specificity,
            "relevance": self.relevance,
            "clarity": self.clarity,
        }


DEFAULT_WEIGHTS = DimensionWeights(
    completeness=0.4, specificity=0.3, relevance=0.2, clarity=0.1
)

QUESTION_TYPE_WEIGHTS: Mapping[str, DimensionWeights] = MappingProxyType(
    {
        "productDescription": DEFAULT_WEIGHTS,
        "problemStatement": DEFAULT_WEIGHTS,
        "businessObjectives": DimensionWeights(0.35, 0.35, 0.2, 0.1),
        "targetMarket": DEFAULT_WEIGHTS,
        "userStories": DimensionWeights(0.2, 0.3, 0.4, 0.1),
        "functionalReqs": DEFAULT_WEIGHTS,
        "successMetrics": DimensionWeights(0.3, 0.4, 0.2, 0.1),
    }
)


@dataclass(frozen=True, slots=True)
class QualityBreakdown:
    """Per-dimension scores plus the weights that produced ``overall``."""

    overall: int
    completeness: float
    specificity: float
    relevance: float
    clarity: float
    weights: DimensionWeights

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "completeness": self.completeness,
            "specificity": self.specificity,
            "relevance": self.relevance,
            "clarity": self.clarity,
            "weights": self.weights.to_dict(),
        }


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def _sentences(text: str) -> List[str]:
    return [part for part in _SENTENCE_SPLIT.split(text) if part.strip()]


def _bucket(value: float, steps: Tuple[Tuple[float, int], ...]) -> int:
    """Return the points of the highest threshold ``value`` reaches."""

    for threshold, points in steps:
        if value >= threshold:
            return points
    return 0


class QualityScorer:
    """Scores free text on completeness, specificity, relevance and clarity.

    Every public scorer returns a number in ``[0, 100]`` and treats empty or
    non-string input as ``0`` rather than raising.
    """

    def __init__(
        self,
        *,
        weights: Optional[Mapping[str, DimensionWeights]] = None,
        patterns: ScoringPatterns = SCORING_PATTERNS,
        relevance: RelevanceTables = RELEVANCE_TABLES,
    ) -> None:
        self._weights = weights if weights is not None else QUESTION_TYPE_WEIGHTS
        self._patterns = patterns
        self._relevance = relevance
        self._keyword_patterns: Dict[str, Tuple[Pattern[str], ...]] = {
            question_type: tuple(
                re.compile(rf"\b{re.escape(keyword.lower())}\b")
                for keyword in keywords
            )
            for question_type, keywords in relevance.question_keywords.items()
        }

    def get_weights(self, question_type: Optional[str]) -> DimensionWeights:
        if question_type and question_type in self._weights:
            return self._weights[question_type]
        return self._weights.get("default", DEFAULT_WEIGHTS)

    def score(
        self,
        text: Any,
        question_type: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Weighted overall score for ``text`` answering ``question_type``."""

        if not isinstance(text, str) or not text.strip():
            return 0
        return self.score_breakdown(text, question_type, context).overall

    score_response = score

    def score_breakdown(
        self,
        text: Any,
        question_type: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> QualityBreakdown:
        weights = self.get_weights(question_type)
        if not isinstance(text, str) or not text.strip():
            return QualityBreakdown(0, 0, 0, 0, 0, weights)

        relevance_context: Dict[str, Any] = dict(context or {})
        relevance_context["question_type"] = question_type
        completeness = self.score_completeness(text)
        specificity = self.score_specificity(text)
        relevance = self.score_relevance(text, relevance_context)
        clarity = self.score_clarity(text)

        weighted = (
            completeness * weights.completeness
            + specificity * weights.specificity
            + relevance * weights.relevance
            + clarity * weights.clarity
        )
        overall = int(_clamp(weighted) + 0.5)
        logger.debug(
            "Quality %s for %s: completeness=%s specificity=%s relevance=%s clarity=%s",
            overall,
            question_type or "default",
            completeness,
            specificity,
            relevance,
            clarity,
        )
        return QualityBreakdown(
            overall=overall,
            completeness=completeness,
            specificity=specificity,
            relevance=relevance,
            clarity=clarity,
            weights=weights,
        )

    def score_completeness(self, text: Any) -> float:
        if not isinstance(text, str) or not text.strip():
            return 0
        score = _bucket(
            len(text.strip()), ((200, 40), (100, 30), (50, 20), (20, 10))
        )
        score += _bucket(len(text.split()), ((50, 20), (25, 15), (10, 10)))
        score += _bucket(len(_sentences(text)), ((5, 20), (3, 15), (2, 10)))
        score += _bucket(
            len(self.extract_concepts(text)), ((5, 20), (3, 15), (2, 10))
        )
        return _clamp(score)

    def score_specificity(self, text: Any) -> float:
        if not isinstance(text, str) or not text.strip():
            return 0
        patterns = self._patterns
        score = 30.0
        score += min(count_matches(patterns.specific, text) * 5, 40)
        score -= count_matches(patterns.vague, text) * 3
        score += min(count_matches(patterns.detailed, text) * 3, 20)
        proper_nouns = len(patterns.proper_noun.findall(text))
        score += min(proper_nouns * 2, 10)
        return _clamp(score)

    def score_relevance(
        self,
        text: Any,
        context: Optional[Mapping[str, Any]] = None,
    ) -> float:
        if not isinstance(text, str) or not text.strip():
            return 0
        context = context or {}
        question_type = context.get("question_type") or "default"
        lowered = text.lower()
        tables = self._relevance

        score = 50.0
        keyword_hits = sum(
            len(pattern.findall(lowered))
            for pattern in self._keyword_patterns.get(question_type, ())
        )
        score += min(keyword_hits * 5, 30)

        section = context.get("section")
        if section:
            section_key = getattr(section, "value", section)
            for keyword in tables.section_keywords.get(section_key, ()):
                if keyword.lower() in lowered:
                    score += 3

        off_topic = sum(1 for phrase in tables.off_topic if phrase in lowered)
        score -= off_topic * 15

        if self.answers_implicit_question(text, question_type):
            score += 15
        return _clamp(score)

    def score_clarity(self, text: Any) -> float:
        if not isinstance(text, str) or not text.strip():
            return 0
        patterns = self._patterns
        score = 40.0
        score += min(count_matches(patterns.structured, text) * 3, 25)
        score += min(count_matches(patterns.clarity, text) * 2, 20)

        sentences = _sentences(text)
        lengths = [len(sentence.split()) for sentence in sentences]
        if lengths:
            average = sum(lengths) / len(lengths)
            if 15 <= average <= 25:
                score += 10
            elif 10 <= average <= 30:
                score += 5

        paragraphs = [part for part in _PARAGRAPH_SPLIT.split(text) if part.strip()]
        if len(paragraphs) > 1:
            score += 5

        score -= count_matches(patterns.poor_grammar, text) * 2
        score -= sum(1 for length in lengths if length > 40) * 5
        return _clamp(score)

    def extract_concepts(self, text: str) -> List[str]:
        """Distinct concept-vocabulary hits, lowercased, in first-seen order."""

        seen: Dict[str, None] = {}
        for pattern in self._patterns.concepts:
            for match in pattern.findall(text):
                seen.setdefault(match.lower(), None)
        return list(seen)

    def answers_implicit_question(self, text: str, question_type: str) -> bool:
        patterns = self._relevance.implicit_answers.get(question_type, ())
        return any(pattern.search(text) for pattern in patterns)
