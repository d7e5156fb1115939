"""Markdown drafts and canned guidance for PRD sections."""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .sections import SECTION_ORDER, SECTION_TITLES, SectionId
from .validation import SectionValidation, ValidationResult

MAX_SUGGESTIONS = 3
MAX_FOLLOW_UP_QUESTIONS = 2
DEFAULT_DOCUMENT_TITLE = "Product Requirements Document"

_CAMEL_BOUNDARY = re.compile(r"([A-Z])")

SECTION_FIELD_HEADINGS: Dict[SectionId, Tuple[Tuple[str, str], ...]] = {
    SectionId.INTRODUCTION: (
        ("productDescription", "Product Description"),
        ("problemStatement", "Problem Statement"),
        ("targetMarket", "Target Market"),
    ),
    SectionId.GOALS: (
        ("businessObjectives", "Business Objectives"),
        ("successMetrics", "Success Metrics"),
    ),
    SectionId.AUDIENCE: (
        ("primaryUsers", "Primary Users"),
        ("userNeeds", "User Needs and Pain Points"),
    ),
    SectionId.REQUIREMENTS: (
        ("functionalReqs", "Functional Requirements"),
        ("nonFunctionalReqs", "Non-Functional Requirements"),
    ),
    SectionId.METRICS: (("kpis", "Key Performance Indicators"),),
}

# Sections rendered as one bullet per answer line instead of sub-headings.
BULLET_FIELDS: Dict[SectionId, str] = {
    SectionId.USER_STORIES: "coreStories",
    SectionId.QUESTIONS: "openQuestions",
}

SECTION_SUGGESTIONS: Dict[SectionId, Tuple[str, ...]] = {
    SectionId.INTRODUCTION: (
        "Describe your product in more detail",
        "Explain who your target users are",
        "Mention key competitors",
    ),
    SectionId.GOALS: (
        "Add specific, measurable goals",
        "Include business objectives",
        "Consider different timeframes (short vs long term)",
    ),
    SectionId.REQUIREMENTS: (
        "Add functional requirements",
        "Consider non-functional requirements like performance",
        "Prioritize requirements (must-have vs nice-to-have)",
    ),
}

FOLLOW_UP_QUESTIONS: Dict[SectionId, Tuple[str, ...]] = {
    SectionId.INTRODUCTION: (
        "What problem does your product solve?",
        "Who are your main competitors?",
        "What makes your product unique?",
    ),
    SectionId.GOALS: (
        "What metrics will you use to measure success?",
        "What is your timeline for achieving these goals?",
        "How do these goals align with your business strategy?",
    ),
    SectionId.AUDIENCE: (
        "What are the key demographics of your users?",
        "What are their primary pain points?",
        "How tech-savvy are your target users?",
    ),
}

REVIEW_SUGGESTIONS = (
    "Review for clarity and completeness",
    "Consider adding concrete examples",
    "Ensure alignment with overall product vision",
)


def humanize_field(field_name: str) -> str:
    """``nonFunctionalReqs`` -> ``Non Functional Reqs``."""

    spaced = _CAMEL_BOUNDARY.sub(r" \1", field_name).strip()
    return spaced[:1].upper() + spaced[1:]


def render_section_draft(
    section: "str | SectionId",
    responses: Mapping[str, str],
) -> str:
    """Render the answers of one section as a markdown fragment."""

    section_id = SectionId.from_string(section)
    lines = [f"# {SECTION_TITLES[section_id]}", ""]

    bullet_field = BULLET_FIELDS.get(section_id)
    if bullet_field is not None:
        text = responses.get(bullet_field)
        if text:
            lines.extend(f"- {line}" for line in text.split("\n"))
        return "\n".join(lines).rstrip() + "\n"

    headings = SECTION_FIELD_HEADINGS.get(section_id, ())
    known = {field_name for field_name, _ in headings}
    for field_name, heading in headings:
        text = responses.get(field_name)
        if text:
            lines.extend([f"## {heading}", "", text, ""])
    for field_name, text in responses.items():
        # answers outside the fixed plan still show up, after the known ones
        if field_name in known or not text:
            continue
        lines.extend([f"## {humanize_field(field_name)}", "", text, ""])
    return "\n".join(lines).rstrip() + "\n"


def render_document(
    responses_by_section: Mapping["str | SectionId", Mapping[str, str]],
    title: Optional[str] = None,
) -> str:
    """Assemble every answered section, in document order, into one draft."""

    normalized: Dict[SectionId, Mapping[str, str]] = {
        SectionId.from_string(key): value
        for key, value in responses_by_section.items()
    }
    parts: List[str] = [f"# {title or DEFAULT_DOCUMENT_TITLE}", ""]
    for section in SECTION_ORDER:
        answers = normalized.get(section)
        if not answers or not any(answers.values()):
            continue
        fragment = render_section_draft(section, answers)
        # demote section headings one level below the document title
        demoted = [
            f"#{line}" if line.startswith("#") else line
            for line in fragment.splitlines()
        ]
        parts.extend(demoted)
        parts.append("")
    return "\n".join(parts).rstrip() + "\n"


def suggestions_for(
    section: "str | SectionId",
    validation: Optional[ValidationResult] = None,
) -> List[str]:
    section_id = SectionId.from_string(section)
    if validation is not None and not validation.passed:
        suggestions = list(validation.suggestions)
    else:
        suggestions = list(SECTION_SUGGESTIONS.get(section_id, ()))
    return suggestions[:MAX_SUGGESTIONS]


def follow_up_questions_for(section: "str | SectionId") -> List[str]:
    section_id = SectionId.from_string(section)
    return list(FOLLOW_UP_QUESTIONS.get(section_id, ()))[:MAX_FOLLOW_UP_QUESTIONS]


def section_validation_suggestions(
    section: "str | SectionId",
    validation: SectionValidation,
    responses: Mapping[str, str],
) -> List[str]:
    """Guidance for a whole section: missing fields first, then review tips."""

    section_id = SectionId.from_string(section)
    suggestions = [
        f'Add information about "{field_name}"'
        for field_name in validation.missing_required
    ]

    if section_id is SectionId.INTRODUCTION and not responses.get(
        "problemStatement"
    ):
        suggestions.append("Clearly state the problem your product solves")
    elif section_id is SectionId.GOALS and not (
        responses.get("businessObjectives") and responses.get("successMetrics")
    ):
        suggestions.append("Define clear business objectives and success metrics")
    elif section_id is SectionId.AUDIENCE and not responses.get("userNeeds"):
        suggestions.append("Describe your users' key needs and pain points")

    if validation.overall:
        suggestions.extend(REVIEW_SUGGESTIONS)
    return suggestions


def summarize_answers(responses: Mapping[str, str], fields: Sequence[str] = ()) -> str:
    """Bullet list of ``field: answer`` lines used in section wrap-ups."""

    order = list(fields) + [name for name in responses if name not in fields]
    return "\n".join(
        f"- {name}: {responses[name]}" for name in order if responses.get(name)
    )
