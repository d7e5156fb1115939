"""Unit tests for the heuristic quality scorer."""

import pytest

from prd_interview_agent.quality_scorer import (
    DEFAULT_WEIGHTS,
    QUESTION_TYPE_WEIGHTS,
    QualityScorer,
)

RICH_DESCRIPTION = (
    "FlowDesk is a web platform for remote product teams at mid-size "
    "companies. What it is: a workflow tool that turns customer feedback into "
    "prioritized feature requests. Who it is for: product managers and "
    "engineering leads at 200-person organizations. Why they need it: teams "
    "lose 6 hours every week triaging requests by hand, which costs each "
    "business roughly $40,000 per year. For example, our pilot with Acme Corp "
    "cut triage time by 45% in 3 months because duplicate tickets are merged "
    "automatically. The solution also exposes an API so the system integrates "
    "with existing CRM tools."
)


class TestOverallScore:
    """Weighted overall score behaviour."""

    def test_rich_answer_scores_high(self, scorer):
        score = scorer.score(
            RICH_DESCRIPTION, "productDescription", {"section": "introduction"}
        )
        assert score >= 85

    def test_vague_answer_scores_low(self, scorer):
        score = scorer.score(
            "An app that does stuff for people who want things.",
            "productDescription",
            {"section": "introduction"},
        )
        assert score < 50

    @pytest.mark.parametrize("value", [None, "", "   ", 42])
    def test_unusable_input_scores_zero(self, scorer, value):
        assert scorer.score(value, "productDescription") == 0

    def test_breakdown_reports_dimensions(self, scorer):
        breakdown = scorer.score_breakdown(
            RICH_DESCRIPTION, "productDescription", {"section": "introduction"}
        )

        assert breakdown.weights == DEFAULT_WEIGHTS
        assert breakdown.relevance == 100
        assert breakdown.completeness == 100
        assert 0 <= breakdown.clarity <= 100
        assert breakdown.to_dict()["overall"] == breakdown.overall

    def test_alias(self, scorer):
        assert scorer.score_response("Some text here.") == scorer.score(
            "Some text here."
        )


class TestWeights:
    def test_every_weight_set_sums_to_one(self):
        for weights in QUESTION_TYPE_WEIGHTS.values():
            assert weights.total() == pytest.approx(1.0)

    def test_unknown_type_uses_default(self, scorer):
        assert scorer.get_weights("pricingModel") == DEFAULT_WEIGHTS
        assert scorer.get_weights(None) == DEFAULT_WEIGHTS

    def test_user_stories_emphasise_relevance(self, scorer):
        weights = scorer.get_weights("userStories")
        assert weights.relevance > weights.completeness

    def test_problem_statement_uses_default_weights(self, scorer):
        assert scorer.get_weights("problemStatement") == DEFAULT_WEIGHTS


class TestDimensions:
    """Individual dimension scorers."""

    def test_completeness_of_tiny_answer(self, scorer):
        assert scorer.score_completeness("An app.") == 0

    def test_vague_text_is_not_specific(self, scorer):
        assert (
            scorer.score_specificity(
                "Some users might use this sometimes for various things."
            )
            < 40
        )

    def test_concrete_text_is_specific(self, scorer):
        text = (
            "Our SaaS platform targets 25-35 year old marketing professionals "
            "in Fortune 500 companies, with 10,000+ daily active users and 95% "
            "customer retention rate."
        )
        assert scorer.score_specificity(text) > 65

    def test_off_topic_text_is_irrelevant(self, scorer):
        relevance = scorer.score_relevance(
            "I like pizza and the weather is nice today.",
            {"question_type": "productDescription"},
        )
        assert relevance < 25

    def test_on_topic_problem_statement_is_relevant(self, scorer):
        relevance = scorer.score_relevance(
            "The main problem is that remote teams struggle with real-time "
            "collaboration, leading to 40% longer project timelines.",
            {"question_type": "problemStatement", "section": "introduction"},
        )
        assert relevance > 75

    def test_rambling_text_is_unclear(self, scorer):
        clarity = scorer.score_clarity(
            "well so like there are problems and stuff happens and users dont "
            "like when things dont work good and yeah..."
        )
        assert clarity < 65

    def test_extract_concepts_deduplicates(self, scorer):
        concepts = scorer.extract_concepts(
            "The Platform helps each user. The platform serves every user."
        )
        assert concepts == ["platform", "user"]

    def test_implicit_answer_detection(self, scorer):
        assert scorer.answers_implicit_question(
            "As a manager I want exports", "userStories"
        )
        assert not scorer.answers_implicit_question("Nothing here", "unknownType")


class TestLongInput:
    """Pasted answers of tens of kilobytes on a single line."""

    @pytest.mark.parametrize(
        "text",
        ["what " * 20000, "who " * 20000, "x" * 200000, "Is it good? " * 10000],
    )
    def test_scores_stay_in_range(self, scorer, text):
        breakdown = scorer.score_breakdown(
            text, "productDescription", {"section": "introduction"}
        )

        assert 0 <= breakdown.overall <= 100
        for value in (
            breakdown.completeness,
            breakdown.specificity,
            breakdown.relevance,
            breakdown.clarity,
        ):
            assert 0 <= value <= 100

    def test_implicit_terms_must_appear_in_order(self, scorer):
        assert scorer.answers_implicit_question(
            "What it is: a triage tool", "productDescription"
        )
        assert not scorer.answers_implicit_question(
            "It is unclear what", "productDescription"
        )
        assert not scorer.answers_implicit_question(
            "Ask what\nit is", "productDescription"
        )
