"""Section catalogue and static question plan for the PRD interview."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .config import ConfigurationError


class SectionId(str, Enum):
    """Topical sections of the requirements document, in interview order."""

    INTRODUCTION = "introduction"
    GOALS = "goals"
    AUDIENCE = "audience"
    USER_STORIES = "userStories"
    REQUIREMENTS = "requirements"
    METRICS = "metrics"
    QUESTIONS = "questions"

    @classmethod
    def from_string(
        cls,
        section: "str | SectionId | None",
        default: Optional["SectionId"] = None,
    ) -> "SectionId":
        """Normalize arbitrary caller input into a known section."""
        if isinstance(section, SectionId):
            return section
        if not section:
            if default is None:
                raise ConfigurationError("Section id is required.")
            return default
        normalized = str(section).strip()
        for candidate in cls:
            if candidate.value == normalized:
                return candidate
        lowered = normalized.lower().replace("_", "").replace(" ", "")
        for candidate in cls:
            if candidate.value.lower() == lowered:
                return candidate
        if default is not None:
            return default
        raise ConfigurationError(f"Unknown section: {section}")


SECTION_ORDER: Tuple[SectionId, ...] = tuple(SectionId)

SECTION_TITLES: Dict[SectionId, str] = {
    SectionId.INTRODUCTION: "Introduction",
    SectionId.GOALS: "Goals and Objectives",
    SectionId.AUDIENCE: "Target Audience",
    SectionId.USER_STORIES: "User Stories",
    SectionId.REQUIREMENTS: "Requirements",
    SectionId.METRICS: "Success Metrics",
    SectionId.QUESTIONS: "Open Questions",
}


@dataclass(frozen=True, slots=True)
class QuestionSpec:
    """Static definition of a single interview question."""

    id: str
    text: str
    section: SectionId
    field_name: str
    question_type: str = ""

    @property
    def scoring_type(self) -> str:
        """Question type used to pick quality weights and keywords."""
        return self.question_type or self.field_name

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "text": self.text,
            "section": self.section.value,
            "field_name": self.field_name,
            "question_type": self.scoring_type,
        }


def _question(
    section: SectionId,
    field_name: str,
    text: str,
    question_type: str = "",
) -> QuestionSpec:
    return QuestionSpec(
        id=field_name,
        text=text,
        section=section,
        field_name=field_name,
        question_type=question_type,
    )


SECTION_QUESTIONS: Dict[SectionId, Tuple[QuestionSpec, ...]] = {
    SectionId.INTRODUCTION: (
        _question(
            SectionId.INTRODUCTION,
            "productDescription",
            "What product are you building and who is it for?",
        ),
        _question(
            SectionId.INTRODUCTION,
            "problemStatement",
            "What problem does your product solve?",
        ),
        _question(
            SectionId.INTRODUCTION,
            "targetMarket",
            "Who is your target market?",
        ),
    ),
    SectionId.GOALS: (
        _question(
            SectionId.GOALS,
            "businessObjectives",
            "What are your main business objectives?",
        ),
        _question(
            SectionId.GOALS,
            "successMetrics",
            "How will you measure success?",
        ),
    ),
    SectionId.AUDIENCE: (
        _question(
            SectionId.AUDIENCE,
            "primaryUsers",
            "Who are your primary users?",
            question_type="targetMarket",
        ),
        _question(
            SectionId.AUDIENCE,
            "userNeeds",
            "What are their key needs and pain points?",
            question_type="problemStatement",
        ),
    ),
    SectionId.USER_STORIES: (
        _question(
            SectionId.USER_STORIES,
            "coreStories",
            "What are the main user stories?",
            question_type="userStories",
        ),
    ),
    SectionId.REQUIREMENTS: (
        _question(
            SectionId.REQUIREMENTS,
            "functionalReqs",
            "What are the functional requirements?",
        ),
        _question(
            SectionId.REQUIREMENTS,
            "nonFunctionalReqs",
            "What are the non-functional requirements?",
            question_type="functionalReqs",
        ),
    ),
    SectionId.METRICS: (
        _question(
            SectionId.METRICS,
            "kpis",
            "What are your key performance indicators?",
            question_type="successMetrics",
        ),
    ),
    SectionId.QUESTIONS: (
        _question(
            SectionId.QUESTIONS,
            "openQuestions",
            "What open questions remain?",
        ),
    ),
}
