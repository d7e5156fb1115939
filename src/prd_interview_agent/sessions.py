"""Conversation driver that walks a user through every PRD section."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional
from uuid import uuid4

from .config import AppSettings
from .drafts import render_document, summarize_answers
from .orchestrator import (
    ConversationMessage,
    ConversationOrchestrator,
    ConversationState,
    NextAction,
    ProcessResult,
)
from .quality_scorer import QualityScorer
from .sections import SECTION_TITLES, QuestionSpec, SectionId
from .validation import RuleValidator

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .session_store import SessionRepository

logger = logging.getLogger(__name__)

TERMINATION_TOKENS = {"done", "no further questions", "[end]", "finish"}

OVERRIDE_ACCEPT_RESPONSES = {
    "yes",
    "y",
    "yep",
    "ok",
    "okay",
    "skip",
    "proceed",
    "continue",
    "mark complete",
}

COMPLETION_HEADER = "Interview complete. Here is your PRD draft:"


def new_session_id(now: Optional[datetime] = None) -> str:
    """Sortable identifier of the form ``sess-YYYYmmddHHMMSS-xxxxxx``."""

    created_at = now or datetime.now(timezone.utc)
    return "sess-{}-{}".format(created_at.strftime("%Y%m%d%H%M%S"), uuid4().hex[:6])


def compose_reply(
    result: ProcessResult,
    question: QuestionSpec,
    section: SectionId,
) -> str:
    """Assistant text for one processed answer."""

    validation = result.validation
    quality_note = ""
    if result.quality is not None:
        quality_note = f"\nQuality score: {result.quality.overall}/100"

    if not validation.passed:
        lines = ["I noticed some issues with your response:"]
        lines.extend(f"- {issue}" for issue in validation.issues)
        lines.append("")
        lines.append("Please provide more details to address these points.")
        return "\n".join(lines) + quality_note

    if result.section_complete:
        summary = summarize_answers(result.context.current_responses)
        return (
            f'Great! We\'ve completed the "{SECTION_TITLES[section]}" section. '
            "Here's a summary of what we've covered:\n\n"
            f"{summary}"
        )

    reply = f'Thanks for your input about "{question.field_name}". '
    if result.next_action is NextAction.FOLLOWUP:
        reply += "Could you elaborate a bit more?"
        if validation.suggestions:
            reply += f" Consider: {validation.suggestions[0]}"
        return reply + quality_note
    return reply + "That's helpful information." + quality_note


@dataclass(slots=True)
class PRDInterviewSession:
    """Encapsulates the question loop for a single interview run."""

    orchestrator: ConversationOrchestrator
    session_id: str = field(default_factory=new_session_id)
    repository: Optional["SessionRepository"] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    messages: List[ConversationMessage] = field(default_factory=list)
    pending_questions: List[QuestionSpec] = field(default_factory=list)
    active_question: Optional[QuestionSpec] = None
    awaiting_override: bool = False
    quality_scores: Dict[str, int] = field(default_factory=dict)
    completed: bool = False
    final_message: Optional[str] = None

    @classmethod
    def create(
        cls,
        settings: Optional[AppSettings] = None,
        *,
        repository: Optional["SessionRepository"] = None,
        with_scoring: bool = True,
        state: Optional[ConversationState] = None,
        session_id: Optional[str] = None,
    ) -> "PRDInterviewSession":
        orchestrator = ConversationOrchestrator(
            RuleValidator.with_defaults(),
            QualityScorer() if with_scoring else None,
            policy=settings.policy if settings else None,
            state=state,
        )
        session = cls(orchestrator=orchestrator, repository=repository)
        if session_id:
            session.session_id = session_id
        return session

    @classmethod
    def resume(
        cls,
        snapshot: Mapping[str, Any],
        settings: Optional[AppSettings] = None,
        *,
        repository: Optional["SessionRepository"] = None,
    ) -> "PRDInterviewSession":
        """Rebuild a session from :meth:`snapshot` output."""

        session = cls.create(
            settings,
            repository=repository,
            with_scoring=bool(snapshot.get("with_scoring", True)),
            state=ConversationState.from_dict(snapshot.get("state") or {}),
            session_id=str(snapshot["id"]),
        )
        session.quality_scores = {
            str(name): int(score)
            for name, score in (snapshot.get("quality_scores") or {}).items()
        }
        created_at = snapshot.get("created_at")
        if isinstance(created_at, str) and created_at:
            session.created_at = datetime.fromisoformat(created_at)
        session.messages = [
            ConversationMessage.from_mapping(raw)
            for raw in snapshot.get("messages") or []
        ]
        session.completed = bool(snapshot.get("completed", False))

        current = session.orchestrator.state.current_section
        active_field = snapshot.get("active_question")
        if current is not None:
            questions = session.orchestrator.questions_for(current)
            pending = set(snapshot.get("pending_questions") or [])
            session.pending_questions = [
                question for question in questions if question.field_name in pending
            ]
            if active_field:
                session.active_question = session.orchestrator.find_question(
                    current, active_field
                )
        session.awaiting_override = bool(snapshot.get("awaiting_override", False))
        return session

    @property
    def current_section(self) -> Optional[SectionId]:
        return self.orchestrator.state.current_section

    def kickoff(self) -> str:
        """Start (or resume) the interview and return the first prompt."""

        if self.completed:
            return self._completion_notice()
        if self.awaiting_override and self.current_section is not None:
            return self._offer_override(self.current_section)
        if self.active_question is not None and self.current_section is not None:
            prompt = self._question_prompt(self.active_question, resumed=True)
            self._record("assistant", prompt)
            return prompt
        return "\n\n".join(self._advance())

    def handle_user_message(self, user_text: str) -> List[str]:
        """Process a user response and return assistant utterances."""

        updates: List[str] = []
        normalized = user_text.strip()
        if not normalized:
            return updates

        if self.completed:
            updates.append(self._completion_notice())
            return updates

        if normalized.lower() in TERMINATION_TOKENS:
            updates.append(self._finalize_session())
            return updates

        self._record("user", normalized)
        if self.awaiting_override:
            updates.extend(self._handle_override(normalized))
            return updates

        question = self.active_question
        section = self.current_section
        if question is None or section is None:
            updates.extend(self._advance())
            return updates

        result = self.orchestrator.process_user_input(
            normalized, section, field_name=question.field_name
        )
        if result.quality is not None:
            self.quality_scores[question.field_name] = result.quality.overall
        reply = compose_reply(result, question, section)

        if result.section_complete:
            self._record("assistant", reply, summary=True)
            updates.append(reply)
            updates.extend(self._close_section(section))
            return updates

        self._record("assistant", reply)
        updates.append(reply)
        if result.next_action is NextAction.FOLLOWUP:
            updates.append(self._ask(question))
            return updates

        if self.pending_questions:
            updates.append(self._ask(self.pending_questions.pop(0)))
            return updates

        updates.append(self._offer_override(section))
        return updates

    def compressed_history(self) -> List[ConversationMessage]:
        return self.orchestrator.compress_conversation(self.messages)

    def draft(self, title: Optional[str] = None) -> str:
        return render_document(self.orchestrator.state.responses, title)

    def snapshot(self) -> Dict[str, Any]:
        """JSON-serialisable view of the session, accepted by :meth:`resume`."""

        return {
            "id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "completed": self.completed,
            "with_scoring": self.orchestrator.scorer is not None,
            "awaiting_override": self.awaiting_override,
            "quality_scores": dict(self.quality_scores),
            "active_question": (
                self.active_question.field_name if self.active_question else None
            ),
            "pending_questions": [
                question.field_name for question in self.pending_questions
            ],
            "state": self.orchestrator.state.to_dict(),
            "progress": self.orchestrator.calculate_progress().to_dict(),
            "messages": [message.to_dict() for message in self.messages],
        }

    def _advance(self) -> List[str]:
        """Open the next incomplete section, or finish when none remain."""

        updates: List[str] = []
        while True:
            section = self.orchestrator.next_section()
            if section is None:
                updates.append(self._finalize_session())
                return updates

            context = {
                "previous_sections": self.orchestrator.build_context().previous_sections
            }
            start = self.orchestrator.initialize_section(section, context)
            if start.carried_answers:
                reused = ", ".join(sorted(start.carried_answers))
                note = f"I reused your earlier answers for: {reused}."
                self._record("assistant", note)
                updates.append(note)

            if start.questions:
                self.pending_questions = list(start.questions[1:])
                updates.append(self._ask(start.questions[0], opening=True))
                return updates

            if not self.orchestrator.can_proceed_to_next(section).can_proceed:
                updates.append(self._offer_override(section))
                return updates
            self.orchestrator.complete_section(section)

    def _handle_override(self, user_text: str) -> List[str]:
        section = self.current_section
        self.awaiting_override = False
        if section is None:
            return self._advance()

        updates: List[str] = []
        if user_text.lower().rstrip(".! ") in OVERRIDE_ACCEPT_RESPONSES:
            logger.info("Section %s completed by manual override", section.value)
            note = f'Marked "{SECTION_TITLES[section]}" as complete.'
            self._record("assistant", note, summary=True)
            updates.append(note)
            updates.extend(self._close_section(section))
            return updates

        check = self.orchestrator.can_proceed_to_next(section)
        retry = [
            question
            for question in self.orchestrator.questions_for(section)
            if question.field_name in check.missing_fields
            or not getattr(
                check.validation_details.get(question.field_name), "passed", True
            )
        ]
        if not retry:
            updates.extend(self._close_section(section))
            return updates
        self.pending_questions = retry[1:]
        updates.append(self._ask(retry[0]))
        return updates

    def _close_section(self, section: SectionId) -> List[str]:
        """Complete the section, open the next one and checkpoint the session."""

        self.orchestrator.complete_section(section)
        self.active_question = None
        self.pending_questions = []
        updates = self._advance()
        if not self.completed:
            self.save()
        return updates

    def _offer_override(self, section: SectionId) -> str:
        check = self.orchestrator.can_proceed_to_next(section)
        outstanding = [f"- {name} (not answered)" for name in check.missing_fields]
        for name, result in check.validation_details.items():
            if result.passed or name in check.missing_fields:
                continue
            scores = f"validation score {result.score}"
            if name in self.quality_scores:
                scores += f", quality score {self.quality_scores[name]}"
            outstanding.append(f"- {name} ({scores})")
        details = "\n".join(outstanding) or "- its answers"
        self.awaiting_override = True
        self.active_question = None
        message = (
            f'The "{SECTION_TITLES[section]}" section still needs work on:\n'
            f"{details}\n"
            "Reply 'yes' to mark it complete anyway, or anything else to "
            "revisit those questions."
        )
        self._record("assistant", message)
        return message

    def _ask(self, question: QuestionSpec, *, opening: bool = False) -> str:
        self.active_question = question
        prompt = self._question_prompt(question, opening=opening)
        self._record("assistant", prompt)
        return prompt

    @staticmethod
    def _question_prompt(
        question: QuestionSpec,
        *,
        opening: bool = False,
        resumed: bool = False,
    ) -> str:
        title = SECTION_TITLES[question.section]
        if resumed:
            return f"Welcome back! We were working on {title}. {question.text}"
        if opening:
            return f"Let's work on the {title} section. {question.text}"
        return question.text

    def _finalize_session(self) -> str:
        if self.completed:
            return self._completion_notice()

        self.completed = True
        self.awaiting_override = False
        self.active_question = None
        self.pending_questions = []
        self.final_message = self._completion_message(self.save())
        return self.final_message

    def _completion_notice(self) -> str:
        """Final draft of a finished session, rebuilt after a resume."""

        if self.final_message is None:
            record_id = self.session_id if self.repository is not None else None
            self.final_message = self._completion_message(record_id)
        return self.final_message

    def _completion_message(self, record_id: Optional[str]) -> str:
        lines = [COMPLETION_HEADER, "", self.draft()]
        if record_id:
            lines.append(f"Session id: {record_id}")
        return "\n".join(lines).rstrip()

    def _record(self, role: str, content: str, *, summary: bool = False) -> None:
        section = self.current_section
        self.messages.append(
            ConversationMessage(
                role=role,
                content=content,
                section=section.value if section else None,
                summary=summary,
            )
        )

    def save(self) -> Optional[str]:
        if self.repository is None:
            return None
        return self.repository.save_snapshot(self.snapshot())
