"""Command line entry-point for the PRD interview agent."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import AppSettings
from .quality_scorer import QualityScorer
from .sections import SECTION_ORDER, SectionId
from .session_store import SessionRepository
from .sessions import PRDInterviewSession, TERMINATION_TOKENS
from .sessions_cli import run_sessions_cli
from .validation import RuleValidator

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prd-interview-agent",
        description="Interview a product owner and draft a PRD section by section",
    )
    parser.add_argument(
        "--resume",
        metavar="SESSION_ID",
        help="Continue a previously saved session",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not persist session snapshots",
    )
    parser.add_argument(
        "--no-scoring",
        action="store_true",
        help="Skip the quality breakdown for each answer",
    )
    return parser.parse_args(argv)


def _parse_score_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prd-interview-agent score",
        description="Score a single answer the way the interview does",
    )
    parser.add_argument("text", help="Answer text to score")
    parser.add_argument(
        "--type",
        dest="question_type",
        help="Question type used to pick weights (e.g. productDescription)",
    )
    parser.add_argument(
        "--section",
        choices=[section.value for section in SECTION_ORDER],
        help="Section the answer belongs to",
    )
    parser.add_argument(
        "--field",
        dest="field_name",
        help="Also validate against the rule for this field (needs --section)",
    )
    return parser.parse_args(argv)


def run_score(argv: List[str]) -> None:
    args = _parse_score_args(argv)
    context = {"section": args.section} if args.section else None
    breakdown = QualityScorer().score_breakdown(
        args.text, args.question_type, context
    )
    print(f"Overall quality: {breakdown.overall}")
    print(f" - completeness: {breakdown.completeness:.0f}")
    print(f" - specificity: {breakdown.specificity:.0f}")
    print(f" - relevance: {breakdown.relevance:.0f}")
    print(f" - clarity: {breakdown.clarity:.0f}")

    if not (args.section and args.field_name):
        return
    validator = RuleValidator.with_defaults()
    rule = validator.rule_for(SectionId.from_string(args.section), args.field_name)
    if rule is None:
        print(f"No validation rule for {args.section}.{args.field_name}")
        return
    result = validator.validate_field(args.text, rule)
    print(f"\nValidation: {'passed' if result.passed else 'failed'} "
          f"(score {result.score})")
    for issue in result.issues:
        print(f" ! {issue}")
    for suggestion in result.suggestions:
        print(f" > {suggestion}")


def run_interview(
    settings: AppSettings,
    *,
    resume_id: Optional[str] = None,
    persist: bool = True,
    with_scoring: bool = True,
) -> PRDInterviewSession:
    """Conduct the interview via the terminal and return the session."""

    repository = (
        SessionRepository(settings.session_log, settings.redis_url)
        if persist
        else None
    )
    session: Optional[PRDInterviewSession] = None
    if resume_id:
        if repository is None:
            raise SystemExit("--resume cannot be combined with --no-save")
        snapshot = repository.load_snapshot(resume_id)
        if snapshot is None:
            raise SystemExit(f"Session '{resume_id}' not found.")
        session = PRDInterviewSession.resume(
            snapshot, settings, repository=repository
        )
    if session is None:
        session = PRDInterviewSession.create(
            settings, repository=repository, with_scoring=with_scoring
        )

    print()  # noqa: T201 - CLI UX newline
    print(f"PRD Agent: {session.kickoff()}")  # noqa: T201
    print(
        "(Type one of: "
        + ", ".join(sorted(TERMINATION_TOKENS))
        + " to finish early.)"
    )
    while not session.completed:
        try:
            answer = input("You: ")  # noqa: PLW1514 - intentional CLI input
        except (EOFError, KeyboardInterrupt):
            print()
            saved = session.save()
            if saved:
                print(f"Session saved. Resume with --resume {saved}")
            break
        for update in session.handle_user_message(answer):
            print()
            print(f"PRD Agent: {update}")  # noqa: T201
    return session


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Entry-point invoked from ``python -m prd_interview_agent``."""

    arg_list = list(argv) if argv is not None else sys.argv[1:]
    if arg_list:
        command = arg_list[0]
        if command == "sessions":
            settings = AppSettings.load()
            logging.basicConfig(level=settings.log_level)
            run_sessions_cli(settings, arg_list[1:])
            return
        if command == "score":
            run_score(arg_list[1:])
            return

    args = _parse_args(arg_list)
    settings = AppSettings.load()
    logging.basicConfig(level=settings.log_level)
    logger.debug("Session log at %s", settings.session_log)
    run_interview(
        settings,
        resume_id=args.resume,
        persist=not args.no_save,
        with_scoring=not args.no_scoring,
    )


if __name__ == "__main__":  # pragma: no cover - manual execution hook
    run_cli()
