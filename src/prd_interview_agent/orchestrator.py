"""Per-session conversation state machine for the PRD interview.

The orchestrator takes one answer at a time, validates it against the
section rules, optionally scores it, and decides whether to ask a
follow-up, continue, or offer to complete the section. It performs no
I/O: callers persist :meth:`ConversationState.to_dict` themselves.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from .config import ConfigurationError, ConversationPolicy
from .extraction import extract_answer_data
from .quality_scorer import QualityBreakdown, QualityScorer
from .sections import SECTION_ORDER, SECTION_QUESTIONS, QuestionSpec, SectionId
from .validation import RuleValidator, ValidationResult

logger = logging.getLogger(__name__)

COMPRESSED_MARKER = "... [compressed]"


class InvalidInputError(ValueError):
    """Raised when a caller hands the orchestrator an unusable answer."""


class NextAction(str, Enum):
    """What the caller should do after an answer has been processed."""

    CONTINUE = "continue"
    FOLLOWUP = "followup"
    COMPLETE_SECTION = "complete_section"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    return _utcnow()


@dataclass(slots=True)
class SessionMetadata:
    """Counters and timestamps describing the active conversation."""

    started_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)
    total_questions: int = 0
    total_responses: int = 0

    def touch(self) -> None:
        self.last_activity = _utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "total_questions": self.total_questions,
            "total_responses": self.total_responses,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SessionMetadata":
        return cls(
            started_at=_parse_timestamp(raw.get("started_at")),
            last_activity=_parse_timestamp(raw.get("last_activity")),
            total_questions=int(raw.get("total_questions", 0)),
            total_responses=int(raw.get("total_responses", 0)),
        )


@dataclass(slots=True)
class ConversationState:
    """Everything the orchestrator knows about one session's conversation."""

    current_section: Optional[SectionId] = None
    responses: Dict[SectionId, Dict[str, str]] = field(default_factory=dict)
    attempt_counts: Dict[SectionId, Dict[str, int]] = field(default_factory=dict)
    completed_sections: List[SectionId] = field(default_factory=list)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def section_responses(self, section: SectionId) -> Dict[str, str]:
        return self.responses.setdefault(section, {})

    def attempts(self, section: SectionId, field_name: str) -> int:
        return self.attempt_counts.get(section, {}).get(field_name, 0)

    def record_attempt(self, section: SectionId, field_name: str) -> int:
        counts = self.attempt_counts.setdefault(section, {})
        counts[field_name] = counts.get(field_name, 0) + 1
        return counts[field_name]

    def is_completed(self, section: SectionId) -> bool:
        return section in self.completed_sections

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_section": (
                self.current_section.value if self.current_section else None
            ),
            "responses": {
                section.value: dict(answers)
                for section, answers in self.responses.items()
            },
            "attempt_counts": {
                section.value: dict(counts)
                for section, counts in self.attempt_counts.items()
            },
            "completed_sections": [
                section.value for section in self.completed_sections
            ],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ConversationState":
        current = raw.get("current_section")
        completed: List[SectionId] = []
        for value in raw.get("completed_sections") or []:
            section = SectionId.from_string(value)
            if section not in completed:
                completed.append(section)
        return cls(
            current_section=SectionId.from_string(current) if current else None,
            responses={
                SectionId.from_string(key): {
                    str(name): str(text) for name, text in answers.items()
                }
                for key, answers in (raw.get("responses") or {}).items()
            },
            attempt_counts={
                SectionId.from_string(key): {
                    str(name): int(count) for name, count in counts.items()
                }
                for key, counts in (raw.get("attempt_counts") or {}).items()
            },
            completed_sections=completed,
            metadata=SessionMetadata.from_dict(raw.get("metadata") or {}),
        )


@dataclass(frozen=True, slots=True)
class SectionProgress:
    completed_sections: int
    total_sections: int
    current_section: Optional[SectionId]
    percent_complete: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_sections": self.completed_sections,
            "total_sections": self.total_sections,
            "current_section": (
                self.current_section.value if self.current_section else None
            ),
            "percent_complete": self.percent_complete,
        }


@dataclass(slots=True)
class ContextSnapshot:
    """Prior-section answers, current answers and progress after an exchange."""

    previous_sections: Dict[str, Dict[str, str]]
    current_responses: Dict[str, str]
    session_metadata: Dict[str, Any]
    progress: SectionProgress

    def to_dict(self) -> Dict[str, Any]:
        return {
            "previous_sections": {
                key: dict(value) for key, value in self.previous_sections.items()
            },
            "current_responses": dict(self.current_responses),
            "session_metadata": dict(self.session_metadata),
            "progress": self.progress.to_dict(),
        }


@dataclass(slots=True)
class SectionPlan:
    """Questions still to ask plus answers reusable from earlier sections."""

    section: SectionId
    questions: List[QuestionSpec]
    carried_answers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class SectionStart:
    section: SectionId
    questions: List[QuestionSpec]
    context: ContextSnapshot
    progress: SectionProgress
    carried_answers: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.section.value,
            "questions": [question.to_dict() for question in self.questions],
            "context": self.context.to_dict(),
            "progress": self.progress.to_dict(),
            "carried_answers": dict(self.carried_answers),
        }


@dataclass(slots=True)
class ProceedCheck:
    can_proceed: bool
    missing_fields: List[str] = field(default_factory=list)
    validation_details: Dict[str, ValidationResult] = field(default_factory=dict)


@dataclass(slots=True)
class ProcessResult:
    """Everything the caller needs after one answer has been processed."""

    response: str
    validation: ValidationResult
    extracted_data: Dict[str, Any]
    section_complete: bool
    next_action: NextAction
    context: ContextSnapshot
    attempts: int
    quality: Optional[QualityBreakdown] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "validation": self.validation.to_dict(),
            "extracted_data": dict(self.extracted_data),
            "section_complete": self.section_complete,
            "next_action": self.next_action.value,
            "context": self.context.to_dict(),
            "attempts": self.attempts,
            "quality": self.quality.to_dict() if self.quality else None,
        }


@dataclass(slots=True)
class ConversationMessage:
    """One chat message tagged with the section it belongs to."""

    role: str
    content: str
    section: Optional[str] = None
    summary: bool = False
    compressed: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ConversationMessage":
        section = raw.get("section")
        return cls(
            role=str(raw.get("role", "")),
            content=str(raw.get("content") or ""),
            section=getattr(section, "value", section),
            summary=bool(raw.get("summary", False)),
            compressed=bool(raw.get("compressed", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "section": self.section,
            "summary": self.summary,
            "compressed": self.compressed,
        }


class ConversationOrchestrator:
    """Owns one session's conversation state and drives section gating."""

    def __init__(
        self,
        validator: RuleValidator,
        scorer: Optional[QualityScorer] = None,
        *,
        policy: Optional[ConversationPolicy] = None,
        state: Optional[ConversationState] = None,
        question_plan: Optional[Mapping[SectionId, Sequence[QuestionSpec]]] = None,
    ) -> None:
        if validator is None:
            raise ConfigurationError("RuleValidator is required")
        self._validator = validator
        self._scorer = scorer
        self._policy = policy or ConversationPolicy()
        self._questions: Dict[SectionId, Tuple[QuestionSpec, ...]] = {
            section: tuple(questions)
            for section, questions in (question_plan or SECTION_QUESTIONS).items()
        }
        self.state = state or ConversationState()

    @property
    def validator(self) -> RuleValidator:
        return self._validator

    @property
    def scorer(self) -> Optional[QualityScorer]:
        return self._scorer

    @property
    def policy(self) -> ConversationPolicy:
        return self._policy

    def questions_for(self, section: "str | SectionId") -> Tuple[QuestionSpec, ...]:
        section_id = SectionId.from_string(section)
        if section_id not in self._questions:
            raise ConfigurationError(f"Unknown section: {section_id.value}")
        return self._questions[section_id]

    def find_question(
        self,
        section: "str | SectionId",
        field_name: str,
    ) -> Optional[QuestionSpec]:
        for question in self.questions_for(section):
            if question.field_name == field_name:
                return question
        return None

    # Section lifecycle -------------------------------------------------

    def plan_section(
        self,
        section: "str | SectionId",
        previous_sections: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> SectionPlan:
        """Work out which questions still need asking. Does not touch state."""

        section_id = SectionId.from_string(section)
        questions = self.questions_for(section_id)
        if not previous_sections:
            return SectionPlan(section=section_id, questions=list(questions))

        remaining: List[QuestionSpec] = []
        carried: Dict[str, str] = {}
        for question in questions:
            reused = self._find_previous_answer(
                section_id, question.field_name, previous_sections
            )
            if reused is None:
                remaining.append(question)
            else:
                carried[question.field_name] = reused
        return SectionPlan(
            section=section_id,
            questions=remaining,
            carried_answers=carried,
        )

    def apply_carried_answers(
        self,
        section: "str | SectionId",
        answers: Mapping[str, str],
    ) -> None:
        """Copy answers reused from earlier sections into this section."""

        section_id = SectionId.from_string(section)
        bucket = self.state.section_responses(section_id)
        for field_name, text in answers.items():
            bucket[field_name] = text
            logger.debug(
                "Reusing earlier answer for %s.%s", section_id.value, field_name
            )

    def initialize_section(
        self,
        section: "str | SectionId",
        context: Optional[Mapping[str, Any]] = None,
    ) -> SectionStart:
        """Make ``section`` the active one and return the questions to ask."""

        section_id = SectionId.from_string(section)
        previous = (context or {}).get("previous_sections")
        plan = self.plan_section(section_id, previous)

        self.state.current_section = section_id
        self.state.metadata.touch()
        self.state.section_responses(section_id)
        self.apply_carried_answers(section_id, plan.carried_answers)
        self.state.metadata.total_questions += len(plan.questions)

        logger.info(
            "Initialized section %s with %d question(s), %d reused answer(s)",
            section_id.value,
            len(plan.questions),
            len(plan.carried_answers),
        )
        return SectionStart(
            section=section_id,
            questions=plan.questions,
            context=self.build_context(),
            progress=self.calculate_progress(),
            carried_answers=dict(plan.carried_answers),
        )

    def complete_section(self, section: "str | SectionId") -> None:
        """Mark ``section`` complete. Validation is the caller's job."""

        section_id = SectionId.from_string(section)
        if section_id not in self.state.completed_sections:
            self.state.completed_sections.append(section_id)
            logger.info("Section %s marked complete", section_id.value)
        if self.state.current_section == section_id:
            self.state.current_section = None
        self.state.metadata.touch()

    def next_section(self) -> Optional[SectionId]:
        """First section, in document order, that is not yet complete."""

        for section in SECTION_ORDER:
            if section not in self.state.completed_sections:
                return section
        return None

    def seed_section(
        self,
        section: "str | SectionId",
        content: "str | Mapping[str, Any] | None",
        *,
        completed: bool = False,
    ) -> Dict[str, str]:
        """Load previously stored answers for a section (session resume).

        ``content`` may be the JSON-encoded field map kept by the store or an
        already decoded mapping. Returns the section's answers after seeding.
        """

        section_id = SectionId.from_string(section)
        decoded: Mapping[str, Any]
        if isinstance(content, str):
            try:
                loaded = json.loads(content) if content.strip() else {}
            except json.JSONDecodeError:
                logger.warning(
                    "Ignoring unparseable stored content for section %s",
                    section_id.value,
                )
                loaded = {}
            decoded = loaded if isinstance(loaded, Mapping) else {}
        else:
            decoded = content or {}

        bucket = self.state.section_responses(section_id)
        for field_name, value in decoded.items():
            if value is None:
                continue
            bucket[str(field_name)] = value if isinstance(value, str) else str(value)
        if completed and section_id not in self.state.completed_sections:
            self.state.completed_sections.append(section_id)
        return dict(bucket)

    # Answer processing -------------------------------------------------

    def process_user_input(
        self,
        answer: Any,
        section: "str | SectionId | None",
        *,
        field_name: Optional[str] = None,
    ) -> ProcessResult:
        """Store, validate and assess one answer, then pick the next action."""

        if not isinstance(answer, str) or not answer.strip():
            raise InvalidInputError("Response is required and must be a non-empty string")
        if not section:
            raise InvalidInputError("Section id is required")
        if not field_name:
            raise InvalidInputError("Question context with field_name is required")
        section_id = SectionId.from_string(section)

        metadata = self.state.metadata
        metadata.touch()
        metadata.total_responses += 1

        attempts = self.state.record_attempt(section_id, field_name)
        self.state.section_responses(section_id)[field_name] = answer
        if self.state.is_completed(section_id):
            logger.info(
                "Answer for %s.%s changed after the section was completed",
                section_id.value,
                field_name,
            )

        rule = self._validator.rule_for(section_id, field_name)
        if rule is None:
            validation = ValidationResult.auto_pass()
        else:
            validation = self._validator.validate_field(answer, rule)

        quality: Optional[QualityBreakdown] = None
        if self._scorer is not None:
            question = self.find_question(section_id, field_name)
            question_type = question.scoring_type if question else field_name
            quality = self._scorer.score_breakdown(
                answer, question_type, {"section": section_id.value}
            )

        follow_up = self.should_ask_follow_up(validation)
        proceed = self.can_proceed_to_next(section_id)
        next_action = self._decide_next_action(
            follow_up=follow_up,
            attempts=attempts,
            can_proceed=proceed.can_proceed,
        )
        logger.debug(
            "Processed %s.%s attempt=%d score=%d passed=%s next=%s",
            section_id.value,
            field_name,
            attempts,
            validation.score,
            validation.passed,
            next_action.value,
        )

        return ProcessResult(
            response=answer,
            validation=validation,
            extracted_data=extract_answer_data(answer, field_name),
            section_complete=proceed.can_proceed,
            next_action=next_action,
            context=self.build_context(),
            attempts=attempts,
            quality=quality,
        )

    def should_ask_follow_up(self, validation: ValidationResult) -> bool:
        if not validation.passed:
            return True
        return validation.score < self._policy.follow_up_threshold

    def can_proceed_to_next(self, section: "str | SectionId") -> ProceedCheck:
        """Whether every rule-bearing field of ``section`` is present and passing."""

        section_id = SectionId.from_string(section)
        if not self._validator.has_section(section_id):
            return ProceedCheck(can_proceed=True)
        responses = self.state.responses.get(section_id, {})
        outcome = self._validator.validate_section(section_id, responses)
        return ProceedCheck(
            can_proceed=outcome.overall,
            missing_fields=list(outcome.missing_required),
            validation_details=dict(outcome.details),
        )

    def _decide_next_action(
        self,
        *,
        follow_up: bool,
        attempts: int,
        can_proceed: bool,
    ) -> NextAction:
        if follow_up and attempts < self._policy.max_field_attempts:
            return NextAction.FOLLOWUP
        if can_proceed:
            return NextAction.COMPLETE_SECTION
        return NextAction.CONTINUE

    # Context -----------------------------------------------------------

    def compress_conversation(
        self,
        messages: Optional[Iterable["ConversationMessage | Mapping[str, Any]"]],
    ) -> List[ConversationMessage]:
        """Shrink history from completed sections, keep the active one verbatim."""

        if messages is None:
            return []
        current = self.state.current_section
        current_key = current.value if current else None
        completed = {section.value for section in self.state.completed_sections}
        prefix = self._policy.compression_prefix_chars

        compressed: List[ConversationMessage] = []
        for raw in messages:
            message = (
                raw
                if isinstance(raw, ConversationMessage)
                else ConversationMessage.from_mapping(raw)
            )
            if message.section is None or message.section == current_key:
                compressed.append(message)
                continue
            if message.section not in completed:
                compressed.append(message)
                continue
            if message.role == "user" and len(message.content) > prefix:
                compressed.append(
                    replace(
                        message,
                        content=message.content[:prefix] + COMPRESSED_MARKER,
                        compressed=True,
                    )
                )
            elif message.role == "assistant" and not message.summary:
                continue
            else:
                compressed.append(message)
        return compressed

    def build_context(self) -> ContextSnapshot:
        state = self.state
        previous = {
            section.value: dict(state.responses[section])
            for section in state.completed_sections
            if section in state.responses
        }
        current: Dict[str, str] = {}
        if state.current_section is not None:
            current = dict(state.responses.get(state.current_section, {}))
        return ContextSnapshot(
            previous_sections=previous,
            current_responses=current,
            session_metadata=state.metadata.to_dict(),
            progress=self.calculate_progress(),
        )

    def calculate_progress(self) -> SectionProgress:
        """Completed sections count fully, the active one counts half."""

        total = len(SECTION_ORDER)
        completed = len(self.state.completed_sections)
        active = 1 if self.state.current_section is not None else 0
        percent = int(((completed + 0.5 * active) / total) * 100 + 0.5)
        return SectionProgress(
            completed_sections=completed,
            total_sections=total,
            current_section=self.state.current_section,
            percent_complete=min(percent, 100),
        )

    def get_state(self) -> Dict[str, Any]:
        snapshot = self.state.to_dict()
        snapshot["context"] = self.build_context().to_dict()
        return snapshot

    def reset_state(self) -> None:
        self.state = ConversationState()

    def _find_previous_answer(
        self,
        section: SectionId,
        field_name: str,
        previous_sections: Mapping[str, Mapping[str, Any]],
    ) -> Optional[str]:
        for key, answers in previous_sections.items():
            if getattr(key, "value", key) == section.value or not answers:
                continue
            value = answers.get(field_name)
            if isinstance(value, str) and value:
                return value
        return None
