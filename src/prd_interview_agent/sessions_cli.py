"""Command-line utilities for stored interview sessions."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import AppSettings
from .drafts import render_document
from .sections import SECTION_ORDER, SECTION_TITLES, SectionId
from .session_store import SessionRepository

CommandHandler = Callable[[SessionRepository, argparse.Namespace], None]


def run_sessions_cli(
    settings: AppSettings,
    argv: Optional[List[str]] = None,
) -> None:
    """Entry point for session-related CLI commands."""

    repository = SessionRepository(
        archive_path=settings.session_log,
        redis_url=settings.redis_url,
    )
    parser = argparse.ArgumentParser(
        prog="prd-interview-agent sessions",
        description="Inspect stored PRD interview sessions.",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    list_parser = subparsers.add_parser(
        "list",
        help="Show recently saved sessions",
    )
    list_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        help="Maximum number of sessions to display (default: 10)",
    )
    list_parser.set_defaults(func=_handle_list)

    show_parser = subparsers.add_parser(
        "show",
        help="Display answers and conversation for a session",
    )
    show_parser.add_argument("id", help="Session identifier")
    show_parser.set_defaults(func=_handle_show)

    draft_parser = subparsers.add_parser(
        "draft",
        help="Render the PRD markdown draft for a session",
    )
    draft_parser.add_argument("id", help="Session identifier")
    draft_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the draft to this file instead of stdout",
    )
    draft_parser.add_argument("--title", help="Document title override")
    draft_parser.set_defaults(func=_handle_draft)

    args = parser.parse_args(argv)
    handler: CommandHandler = args.func
    handler(repository, args)


def _handle_list(repository: SessionRepository, args: argparse.Namespace) -> None:
    summaries = repository.list_sessions(limit=args.limit)
    if not summaries:
        print("No sessions found.")
        return
    print(f"Showing {len(summaries)} sessions:")
    for summary in summaries:
        status = "complete" if summary.completed else (
            summary.current_section or "idle"
        )
        print(
            f" - {summary.id} | {summary.saved_at.isoformat()} | "
            f"{summary.percent_complete}% | {status}"
        )


def _handle_show(repository: SessionRepository, args: argparse.Namespace) -> None:
    snapshot = repository.load_snapshot(args.id)
    if not snapshot:
        print(f"Session '{args.id}' not found.")
        return
    state: Dict[str, Any] = snapshot.get("state") or {}
    progress: Dict[str, Any] = snapshot.get("progress") or {}
    completed = set(state.get("completed_sections") or [])
    print(f"Session ID: {snapshot.get('id')}")
    print(f"Started: {snapshot.get('created_at')}")
    print(f"Progress: {progress.get('percent_complete', 0)}%")
    if state.get("current_section"):
        print(f"Current section: {state['current_section']}")

    responses: Dict[str, Dict[str, str]] = state.get("responses") or {}
    for section in SECTION_ORDER:
        answers = responses.get(section.value)
        if not answers:
            continue
        marker = " (complete)" if section.value in completed else ""
        print("\n" + "-" * 40)
        print(f"{SECTION_TITLES[section]}{marker}")
        for field_name, text in answers.items():
            print(f"\n{field_name}:\n{text}")

    messages = snapshot.get("messages") or []
    if messages:
        print("\n" + "=" * 40)
        print(f"Conversation ({len(messages)} messages):")
        for message in messages:
            print(f"\n[{message.get('role')}] {message.get('content')}")


def _handle_draft(repository: SessionRepository, args: argparse.Namespace) -> None:
    snapshot = repository.load_snapshot(args.id)
    if not snapshot:
        print(f"Session '{args.id}' not found.")
        return
    responses = (snapshot.get("state") or {}).get("responses") or {}
    document = render_document(
        {SectionId.from_string(key): value for key, value in responses.items()},
        args.title,
    )
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(document, encoding="utf-8")
        print(f"Draft written to {args.output}")
        return
    print(document)
