"""Validation rule tables for each section field."""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import ConfigurationError
from .patterns import Matcher, OrderedTerms
from .sections import SectionId

RuleTable = Mapping[SectionId, Mapping[str, "ValidationRule"]]

_RULE_KEYS = {
    "min_length": "min_length",
    "minLength": "min_length",
    "max_length": "max_length",
    "maxLength": "max_length",
    "required_elements": "required_elements",
    "requiredElements": "required_elements",
    "quality_threshold": "quality_threshold",
    "qualityThreshold": "quality_threshold",
    "requires_numbers": "requires_numbers",
    "requiresNumbers": "requires_numbers",
    "pattern": "pattern",
    "pattern_hint": "pattern_hint",
    "patternHint": "pattern_hint",
}


@dataclass(frozen=True, slots=True)
class ValidationRule:
    """Declarative acceptance criteria for one answer field."""

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    required_elements: Tuple[str, ...] = ()
    quality_threshold: Optional[int] = None
    requires_numbers: bool = False
    pattern: Optional[Matcher] = None
    pattern_hint: str = ""

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ValidationRule":
        """Build a rule from a plain mapping (camelCase or snake_case keys)."""
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            target = _RULE_KEYS.get(key)
            if target is None:
                # errorMessages and similar annotations are ignored
                continue
            values[target] = value
        elements = values.get("required_elements") or ()
        if isinstance(elements, str) or not all(
            isinstance(element, str) for element in elements
        ):
            raise ConfigurationError(
                "requiredElements must be a list of strings"
            )
        values["required_elements"] = tuple(elements)
        pattern = values.get("pattern")
        if isinstance(pattern, str):
            values["pattern"] = re.compile(pattern, re.IGNORECASE)
        for numeric in ("min_length", "max_length", "quality_threshold"):
            number = values.get(numeric)
            if number is not None and (
                isinstance(number, bool) or not isinstance(number, int)
            ):
                raise ConfigurationError(f"{numeric} must be an integer")
        return cls(**values)


def normalize_rule_table(raw_rules: Any) -> RuleTable:
    """Validate a rule table and coerce it into typed, read-only form.

    Raises :class:`ConfigurationError` for a missing or empty table, for an
    unknown section id, and for any rule entry that is not a mapping.
    """

    if raw_rules is None:
        raise ConfigurationError("Validation rules are required")
    if not isinstance(raw_rules, Mapping):
        raise ConfigurationError("Validation rules must be a mapping")
    if not raw_rules:
        raise ConfigurationError("Validation rules cannot be empty")

    table: Dict[SectionId, Mapping[str, ValidationRule]] = {}
    for section_key, section_rules in raw_rules.items():
        section = SectionId.from_string(section_key)
        if not isinstance(section_rules, Mapping):
            raise ConfigurationError("Invalid rule structure")
        fields: Dict[str, ValidationRule] = {}
        for field_name, rule in section_rules.items():
            if isinstance(rule, ValidationRule):
                fields[field_name] = rule
            elif isinstance(rule, Mapping):
                fields[field_name] = ValidationRule.from_mapping(rule)
            else:
                raise ConfigurationError("Invalid rule structure")
        table[section] = MappingProxyType(fields)
    return MappingProxyType(table)


USER_STORY_PATTERN = OrderedTerms.compile(
    r"\bas\s+an?\s+\S",
    r"\si\s+want\s+\S",
    r"\sso\s+that\s+\S",
    flags=re.IGNORECASE,
)

DEFAULT_RULES: RuleTable = normalize_rule_table(
    {
        SectionId.INTRODUCTION: {
            "productDescription": ValidationRule(
                min_length=50,
                max_length=500,
                required_elements=("what", "who", "why"),
                quality_threshold=75,
            ),
            "problemStatement": ValidationRule(
                min_length=30,
                required_elements=("problem", "impact"),
                quality_threshold=70,
            ),
            "targetMarket": ValidationRule(
                min_length=20,
                required_elements=("who",),
                quality_threshold=65,
            ),
        },
        SectionId.GOALS: {
            "businessObjectives": ValidationRule(
                min_length=30,
                required_elements=("metric", "target", "timeframe"),
                quality_threshold=70,
            ),
            "successMetrics": ValidationRule(
                min_length=20,
                requires_numbers=True,
                quality_threshold=65,
            ),
        },
        SectionId.AUDIENCE: {
            "primaryUsers": ValidationRule(
                min_length=20,
                required_elements=("who",),
                quality_threshold=65,
            ),
            "userNeeds": ValidationRule(
                min_length=20,
                required_elements=("problem",),
                quality_threshold=65,
            ),
        },
        SectionId.USER_STORIES: {
            "coreStories": ValidationRule(
                min_length=30,
                pattern=USER_STORY_PATTERN,
                pattern_hint=(
                    'User stories should follow the format: "As a ..., '
                    'I want ..., so that ..."'
                ),
                quality_threshold=65,
            ),
        },
        SectionId.REQUIREMENTS: {
            "functionalReqs": ValidationRule(
                min_length=30,
                quality_threshold=65,
            ),
            "nonFunctionalReqs": ValidationRule(
                min_length=20,
                quality_threshold=60,
            ),
        },
        SectionId.METRICS: {
            "kpis": ValidationRule(
                min_length=20,
                required_elements=("metric",),
                requires_numbers=True,
                quality_threshold=65,
            ),
        },
        SectionId.QUESTIONS: {
            "openQuestions": ValidationRule(
                min_length=10,
            ),
        },
    }
)
