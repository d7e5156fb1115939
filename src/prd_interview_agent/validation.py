"""Rule-based validation of individual answers and whole sections."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .config import ConfigurationError
from .patterns import VALIDATOR_PATTERNS, ValidatorPatterns, count_matches
from .rules import DEFAULT_RULES, RuleTable, ValidationRule, normalize_rule_table
from .sections import SectionId

logger = logging.getLogger(__name__)

SUB_SCORE_CAP = 25.0
DEFAULT_IDEAL_LENGTH = 200
DEFAULT_QUALITY_FLOOR = 70
GENERIC_DETAIL_SUGGESTION = (
    "Consider adding more specific details and concrete examples"
)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_DIGITS = re.compile(r"\d")


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating one answer against one rule."""

    passed: bool
    score: int
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def auto_pass(cls) -> "ValidationResult":
        """Result used for fields that carry no rule."""
        return cls(passed=True, score=100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "score": self.score,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
        }


@dataclass(slots=True)
class SectionValidation:
    """Aggregated validation for every rule-bearing field of a section."""

    overall: bool
    details: Dict[str, ValidationResult] = field(default_factory=dict)
    missing_required: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "details": {
                name: result.to_dict() for name, result in self.details.items()
            },
            "missing_required": list(self.missing_required),
            "suggestions": list(self.suggestions),
        }


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _normalize_answer(answer: Any) -> str:
    if answer is None:
        return ""
    if not isinstance(answer, str):
        return str(answer)
    return answer


class RuleValidator:
    """Scores answers against declarative per-field rules."""

    def __init__(
        self,
        rules: Any,
        *,
        patterns: ValidatorPatterns = VALIDATOR_PATTERNS,
    ) -> None:
        self._rules: RuleTable = normalize_rule_table(rules)
        self._patterns = patterns

    @classmethod
    def with_defaults(cls) -> "RuleValidator":
        """Validator bound to the built-in rule table."""
        return cls(DEFAULT_RULES)

    @property
    def rules(self) -> RuleTable:
        return self._rules

    def has_section(self, section: "str | SectionId") -> bool:
        return SectionId.from_string(section) in self._rules

    def rule_for(
        self,
        section: "str | SectionId",
        field_name: str,
    ) -> Optional[ValidationRule]:
        section_rules = self._rules.get(SectionId.from_string(section))
        if section_rules is None:
            return None
        return section_rules.get(field_name)

    def validate_section(
        self,
        section: "str | SectionId",
        responses: Mapping[str, Any],
    ) -> SectionValidation:
        """Validate every provided answer and flag rule fields left unanswered."""

        section_id = SectionId.from_string(section)
        section_rules = self._rules.get(section_id)
        if section_rules is None:
            raise ConfigurationError(f"Unknown section: {section_id.value}")

        result = SectionValidation(overall=True)
        for field_name in section_rules:
            value = responses.get(field_name)
            if not value or (isinstance(value, str) and not value.strip()):
                result.missing_required.append(field_name)
                result.overall = False

        for field_name, answer in responses.items():
            rule = section_rules.get(field_name)
            if rule is None:
                continue
            validation = self.validate_field(answer, rule)
            result.details[field_name] = validation
            if not validation.passed:
                result.overall = False
                result.suggestions.extend(validation.suggestions)

        logger.debug(
            "Section %s validated: overall=%s missing=%s",
            section_id.value,
            result.overall,
            result.missing_required,
        )
        return result

    def validate_field(self, answer: Any, rule: ValidationRule) -> ValidationResult:
        """Check length, concept coverage and quality for a single answer."""

        text = _normalize_answer(answer)
        issues: List[str] = []
        suggestions: List[str] = []

        if rule.min_length and len(text) < rule.min_length:
            issues.append(f"Response too short (min: {rule.min_length} chars)")
            suggestions.append("Please provide more detail")
        if rule.max_length and len(text) > rule.max_length:
            issues.append(f"Response too long (max: {rule.max_length} chars)")
            suggestions.append("Please be more concise")

        if rule.required_elements:
            missing = [
                element
                for element in rule.required_elements
                if not self.contains_element(text, element)
            ]
            if missing:
                joined = ", ".join(missing)
                issues.append(f"Missing required elements: {joined}")
                suggestions.append(f"Please include information about: {joined}")

        if rule.requires_numbers and not _DIGITS.search(text):
            issues.append("Response must include specific numbers")
            suggestions.append(
                "Add concrete figures such as counts, percentages or dates"
            )

        if rule.pattern is not None and not rule.pattern.search(text):
            issues.append(
                rule.pattern_hint or "Response does not match the expected format"
            )
            if rule.pattern_hint:
                suggestions.append(rule.pattern_hint)

        score = self.quality_score(text, rule)
        threshold = rule.quality_threshold
        passed = not issues and (threshold is None or score >= threshold)
        floor = threshold if threshold is not None else DEFAULT_QUALITY_FLOOR
        if not passed and score < floor:
            suggestions.append(GENERIC_DETAIL_SUGGESTION)

        return ValidationResult(
            passed=passed,
            score=score,
            issues=issues,
            suggestions=suggestions,
        )

    def quality_score(self, answer: Any, rule: ValidationRule) -> int:
        """Sum of four 25-point sub-scores, rounded into 0..100."""

        text = _normalize_answer(answer)
        if not text:
            return 0

        ideal_length = min(rule.max_length or DEFAULT_IDEAL_LENGTH, DEFAULT_IDEAL_LENGTH)
        length_points = min(len(text) / ideal_length, 1.0) * SUB_SCORE_CAP

        completeness_points = 20.0
        if rule.required_elements:
            present = sum(
                1
                for element in rule.required_elements
                if self.contains_element(text, element)
            )
            ratio = present / len(rule.required_elements)
            completeness_points = max(20.0, ratio * SUB_SCORE_CAP)

        total = (
            _clamp(length_points, 0, SUB_SCORE_CAP)
            + _clamp(completeness_points, 0, SUB_SCORE_CAP)
            + self._specificity_points(text)
            + self._clarity_points(text)
        )
        return int(_clamp(total, 0, 100) + 0.5)

    def contains_element(self, answer: Any, element: str) -> bool:
        """Whole-word match of the element, or a synonym hit for known concepts."""

        text = _normalize_answer(answer)
        if not text:
            return False
        lowered_element = element.lower()
        if re.search(rf"\b{re.escape(lowered_element)}\b", text, re.IGNORECASE):
            return True
        synonyms = self._patterns.concept_synonyms.get(lowered_element, ())
        lowered = text.lower()
        return any(synonym in lowered for synonym in synonyms)

    def _specificity_points(self, text: str) -> float:
        points = 18.0
        for pattern in self._patterns.specific:
            if pattern.search(text):
                points += 3
        points -= count_matches(self._patterns.vague, text)
        return _clamp(points, 0, SUB_SCORE_CAP)

    def _clarity_points(self, text: str) -> float:
        points = 18.0
        sentences = [part for part in _SENTENCE_SPLIT.split(text) if part.strip()]
        bonus = 3 if len(sentences) > 1 else 0
        bonus += 2 * len(self._patterns.connectors.findall(text))
        points += min(bonus, 5)
        points -= count_matches(self._patterns.poor_grammar, text)
        return _clamp(points, 0, SUB_SCORE_CAP)
