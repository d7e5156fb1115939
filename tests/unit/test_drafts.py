"""Unit tests for markdown drafts and canned guidance."""

from prd_interview_agent.drafts import (
    DEFAULT_DOCUMENT_TITLE,
    follow_up_questions_for,
    render_document,
    render_section_draft,
    section_validation_suggestions,
    suggestions_for,
)
from prd_interview_agent.sections import SectionId
from prd_interview_agent.validation import SectionValidation, ValidationResult


class TestSectionDraft:
    def test_introduction_headings(self):
        draft = render_section_draft(
            "introduction",
            {"productDescription": "FlowDesk", "targetMarket": "Product teams"},
        )

        assert draft == (
            "# Introduction\n\n"
            "## Product Description\n\nFlowDesk\n\n"
            "## Target Market\n\nProduct teams\n"
        )

    def test_user_stories_are_bulleted(self):
        draft = render_section_draft(
            SectionId.USER_STORIES, {"coreStories": "As a PM\nAs a lead"}
        )
        assert draft == "# User Stories\n\n- As a PM\n- As a lead\n"

    def test_unplanned_fields_are_rendered(self):
        draft = render_section_draft("metrics", {"kpis": "NPS 40", "northStar": "WAU"})

        assert "## Key Performance Indicators" in draft
        assert "## North Star\n\nWAU" in draft

    def test_empty_section_has_only_title(self):
        assert render_section_draft("goals", {}) == "# Goals and Objectives\n"


class TestDocument:
    def test_sections_follow_document_order(self):
        document = render_document(
            {
                "goals": {"businessObjectives": "Grow"},
                "introduction": {"productDescription": "FlowDesk"},
                "audience": {},
            }
        )

        assert document.startswith(f"# {DEFAULT_DOCUMENT_TITLE}\n")
        assert document.index("## Introduction") < document.index("## Goals")
        assert "### Business Objectives" in document
        assert "Target Audience" not in document

    def test_custom_title(self):
        document = render_document({}, "FlowDesk PRD")
        assert document == "# FlowDesk PRD\n"


class TestSuggestions:
    def test_canned_suggestions(self):
        assert suggestions_for("goals") == [
            "Add specific, measurable goals",
            "Include business objectives",
            "Consider different timeframes (short vs long term)",
        ]
        assert suggestions_for("audience") == []

    def test_failed_validation_suggestions_are_capped(self):
        validation = ValidationResult(
            passed=False, score=40, suggestions=["a", "b", "c", "d"]
        )
        assert suggestions_for("introduction", validation) == ["a", "b", "c"]

    def test_follow_up_questions(self):
        assert follow_up_questions_for("introduction") == [
            "What problem does your product solve?",
            "Who are your main competitors?",
        ]
        assert follow_up_questions_for("metrics") == []

    def test_section_validation_suggestions(self):
        validation = SectionValidation(
            overall=False, missing_required=["problemStatement"]
        )

        suggestions = section_validation_suggestions(
            "introduction", validation, {"productDescription": "FlowDesk"}
        )

        assert suggestions == [
            'Add information about "problemStatement"',
            "Clearly state the problem your product solves",
        ]

    def test_valid_section_gets_review_tips(self):
        validation = SectionValidation(overall=True)

        suggestions = section_validation_suggestions("metrics", validation, {})

        assert "Review for clarity and completeness" in suggestions
