"""Unit tests for the interview session driver."""

import json

import pytest

from prd_interview_agent.sections import SECTION_ORDER, SECTION_QUESTIONS, SectionId
from prd_interview_agent.session_store import SessionRepository
from prd_interview_agent.sessions import (
    COMPLETION_HEADER,
    PRDInterviewSession,
    new_session_id,
)

WEAK_DESCRIPTION = "An app for teams."
DESCRIPTION_QUESTION = "What product are you building and who is it for?"
PROBLEM_QUESTION = "What problem does your product solve?"


@pytest.fixture
def session():
    interview = PRDInterviewSession.create()
    interview.kickoff()
    return interview


def _finish_introduction_with_weak_description(session, answers):
    session.handle_user_message(WEAK_DESCRIPTION)
    session.handle_user_message(WEAK_DESCRIPTION)
    session.handle_user_message(answers["problemStatement"])
    return session.handle_user_message(answers["targetMarket"])


class TestKickoff:
    def test_first_prompt_opens_introduction(self):
        interview = PRDInterviewSession.create()

        prompt = interview.kickoff()

        assert prompt == (
            "Let's work on the Introduction section. " + DESCRIPTION_QUESTION
        )
        assert interview.current_section is SectionId.INTRODUCTION
        assert interview.messages[-1].role == "assistant"

    def test_session_ids_are_prefixed(self):
        assert new_session_id().startswith("sess-")


class TestConversation:
    """Answer handling, follow-ups and section transitions."""

    def test_blank_message_is_ignored(self, session):
        assert session.handle_user_message("   ") == []

    def test_strong_answer_moves_to_next_question(self, session, strong_answers):
        updates = session.handle_user_message(strong_answers["productDescription"])

        assert updates[0].startswith('Thanks for your input about "productDescription"')
        assert updates[1] == PROBLEM_QUESTION

    def test_weak_answer_is_asked_again_once(self, session):
        first = session.handle_user_message(WEAK_DESCRIPTION)
        second = session.handle_user_message(WEAK_DESCRIPTION)

        assert first[0].startswith("I noticed some issues with your response:")
        assert first[1] == DESCRIPTION_QUESTION
        assert second[1] == PROBLEM_QUESTION

    def test_section_completion_summarises_and_advances(self, session, strong_answers):
        session.handle_user_message(strong_answers["productDescription"])
        session.handle_user_message(strong_answers["problemStatement"])
        updates = session.handle_user_message(strong_answers["targetMarket"])

        assert updates[0].startswith('Great! We\'ve completed the "Introduction" section.')
        assert "- targetMarket:" in updates[0]
        assert updates[1] == (
            "Let's work on the Goals and Objectives section. "
            "What are your main business objectives?"
        )
        assert session.orchestrator.state.completed_sections == [SectionId.INTRODUCTION]

    def test_full_interview_produces_document(self, session, strong_answers):
        updates = []
        for section in SECTION_ORDER:
            for question in SECTION_QUESTIONS[section]:
                updates = session.handle_user_message(strong_answers[question.field_name])

        assert session.completed is True
        assert updates[-1].startswith(COMPLETION_HEADER)
        assert "### Product Description" in updates[-1]
        assert "- Which CRM integrations do pilot customers need first?" in updates[-1]
        assert session.orchestrator.calculate_progress().percent_complete == 100

    def test_termination_token_finishes_early(self, session):
        updates = session.handle_user_message("done")

        assert session.completed is True
        assert updates[0].startswith(COMPLETION_HEADER)
        assert session.handle_user_message("anything") == updates


class TestManualOverride:
    def test_override_is_offered(self, session, strong_answers):
        updates = _finish_introduction_with_weak_description(session, strong_answers)

        assert session.awaiting_override is True
        assert "productDescription" in updates[-1]
        assert "Reply 'yes'" in updates[-1]

    def test_accepting_override_completes_section(self, session, strong_answers):
        _finish_introduction_with_weak_description(session, strong_answers)

        updates = session.handle_user_message("yes")

        assert updates[0] == 'Marked "Introduction" as complete.'
        assert session.orchestrator.state.is_completed(SectionId.INTRODUCTION)
        assert session.current_section is SectionId.GOALS

    def test_declining_override_revisits_failed_fields(self, session, strong_answers):
        _finish_introduction_with_weak_description(session, strong_answers)

        updates = session.handle_user_message("no")
        assert updates == [DESCRIPTION_QUESTION]
        assert session.awaiting_override is False

        updates = session.handle_user_message(strong_answers["productDescription"])
        assert updates[0].startswith("Great!")


class TestHistoryAndSnapshots:
    def test_compressed_history(self, session, strong_answers):
        session.handle_user_message(strong_answers["productDescription"])
        session.handle_user_message(strong_answers["problemStatement"])
        session.handle_user_message(strong_answers["targetMarket"])

        history = session.compressed_history()
        introduction = [m for m in history if m.section == "introduction"]

        assert any(m.compressed for m in introduction)
        assert all(m.role == "user" or m.summary for m in introduction)

    def test_resume_from_snapshot(self, session, strong_answers):
        session.handle_user_message(strong_answers["productDescription"])
        snapshot = json.loads(json.dumps(session.snapshot()))

        resumed = PRDInterviewSession.resume(snapshot)

        assert resumed.session_id == session.session_id
        assert resumed.active_question.field_name == "problemStatement"
        assert [q.field_name for q in resumed.pending_questions] == ["targetMarket"]
        assert resumed.kickoff().startswith("Welcome back!")
        updates = resumed.handle_user_message(strong_answers["problemStatement"])
        assert updates[-1] == "Who is your target market?"

    def test_snapshots_are_saved_on_section_completion(self, tmp_path, strong_answers):
        repository = SessionRepository(tmp_path / "sessions.jsonl", None)
        interview = PRDInterviewSession.create(repository=repository)
        interview.kickoff()
        for field_name in ("productDescription", "problemStatement", "targetMarket"):
            interview.handle_user_message(strong_answers[field_name])

        stored = repository.load_snapshot(interview.session_id)

        assert stored["state"]["completed_sections"] == ["introduction"]
        final = interview.handle_user_message("[end]")
        assert final[0].endswith(f"Session id: {interview.session_id}")


class TestResumeEdgeCases:
    """Resuming sessions that were parked at an override prompt or finished."""

    def test_resume_at_override_prompt_reoffers_it(self, session, strong_answers):
        _finish_introduction_with_weak_description(session, strong_answers)
        snapshot = json.loads(json.dumps(session.snapshot()))

        resumed = PRDInterviewSession.resume(snapshot)
        prompt = resumed.kickoff()

        assert "Reply 'yes'" in prompt
        assert resumed.awaiting_override is True
        assert resumed.handle_user_message("no") == [DESCRIPTION_QUESTION]
        updates = resumed.handle_user_message(strong_answers["productDescription"])
        assert updates[0].startswith("Great!")
        responses = resumed.orchestrator.state.responses[SectionId.INTRODUCTION]
        assert responses["productDescription"] == strong_answers["productDescription"]

    def test_resume_finished_session_returns_draft(self, session, strong_answers):
        session.handle_user_message(strong_answers["productDescription"])
        session.handle_user_message("finish")
        snapshot = json.loads(json.dumps(session.snapshot()))

        resumed = PRDInterviewSession.resume(snapshot)
        prompt = resumed.kickoff()

        assert prompt.startswith(COMPLETION_HEADER)
        assert "### Product Description" in prompt
        assert resumed.active_question is None
        assert resumed.messages == session.messages
        assert resumed.handle_user_message("hello") == [prompt]


class TestQualityScores:
    def test_replies_show_quality_score(self, session, strong_answers):
        updates = session.handle_user_message(strong_answers["productDescription"])

        assert "Quality score:" in updates[0]
        assert "productDescription" in session.quality_scores

    def test_scoring_can_be_disabled(self, strong_answers):
        interview = PRDInterviewSession.create(with_scoring=False)
        interview.kickoff()

        updates = interview.handle_user_message(strong_answers["productDescription"])

        assert "Quality score:" not in updates[0]
        assert interview.quality_scores == {}

    def test_resume_keeps_scoring_choice(self):
        interview = PRDInterviewSession.create(with_scoring=False)
        interview.kickoff()
        snapshot = json.loads(json.dumps(interview.snapshot()))

        resumed = PRDInterviewSession.resume(snapshot)

        assert snapshot["with_scoring"] is False
        assert resumed.orchestrator.scorer is None

    def test_override_offer_lists_scores(self, session, strong_answers):
        updates = _finish_introduction_with_weak_description(session, strong_answers)

        offer = updates[-1]
        expected = session.quality_scores["productDescription"]
        assert "- productDescription (validation score " in offer
        assert f"quality score {expected})" in offer
