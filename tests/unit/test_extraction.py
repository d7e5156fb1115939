"""Unit tests for free-text extraction helpers."""

from prd_interview_agent.extraction import (
    extract_answer_data,
    extract_demographics,
    extract_keywords,
    extract_metrics,
    extract_problems,
    extract_product_entities,
)


class TestExtractors:
    def test_metrics(self):
        metrics = extract_metrics("Retain 40% of accounts, save $1,200 and reach 300 teams")

        assert {"type": "percentage", "value": "40"} in metrics
        assert {"type": "currency", "value": "1,200"} in metrics
        assert {"type": "count", "value": "300", "unit": "teams"} in metrics

    def test_demographics(self):
        demographics = extract_demographics(
            "25-35 year old marketing professionals and developers"
        )

        assert demographics["age_range"] == "25-35"
        assert demographics["roles"] == ["professionals", "developers"]

    def test_demographics_empty(self):
        assert extract_demographics("Nobody in particular") == {}

    def test_problems(self):
        problems = extract_problems("The main problem: slow manual triage. Another issue is cost")
        assert problems[0] == "slow manual triage"

    def test_product_entities(self):
        entities = extract_product_entities("A platform that helps teams ship faster")
        assert entities["what"] == ["that helps teams ship faster"]
        assert entities["who"]

    def test_keywords_skip_stop_words(self):
        keywords = extract_keywords("The dashboard and the export; dashboard again!")

        assert keywords[0] == {"word": "dashboard", "count": 2}
        assert all(entry["word"] not in {"the", "and"} for entry in keywords)


class TestAnswerPayload:
    def test_metric_fields_extract_metrics(self):
        payload = extract_answer_data("Reach 40% retention", "kpis")

        assert payload["field_name"] == "kpis"
        assert payload["word_count"] == 3
        assert payload["length"] == len("Reach 40% retention")
        assert payload["metrics"] == [{"type": "percentage", "value": "40"}]

    def test_other_fields_fall_back_to_keywords(self):
        payload = extract_answer_data("Pricing model pricing tiers", "openQuestions")

        assert payload["keywords"][0] == {"word": "pricing", "count": 2}
        assert "timestamp" in payload
