"""PRD interview agent package."""

from __future__ import annotations

from typing import List, Optional

__all__ = ["run_cli"]


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Proxy to :mod:`prd_interview_agent.cli.run_cli` for convenience."""

    from .cli import run_cli as _run_cli_impl

    _run_cli_impl(argv)
