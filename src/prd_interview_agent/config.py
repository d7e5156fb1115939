"""Configuration helpers for the PRD interview agent."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from importlib import import_module
from pathlib import Path
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when static configuration (rules, sections) is unusable."""


@dataclass(frozen=True, slots=True)
class ConversationPolicy:
    """Tunables that drive follow-up and compaction decisions."""

    follow_up_threshold: int = 75
    max_field_attempts: int = 2
    compression_prefix_chars: int = 100


@dataclass(slots=True)
class AppSettings:
    """Top-level application settings loaded from environment variables."""

    output_dir: Path
    session_log: Path
    redis_url: Optional[str]
    log_level: int = logging.INFO
    policy: ConversationPolicy = field(default_factory=ConversationPolicy)

    @classmethod
    def load(cls) -> "AppSettings":
        """Load settings from the environment or .env file."""
        _ensure_dotenv()
        output_dir = Path(os.getenv("PRD_OUTPUT_DIR", "outputs"))
        output_dir.mkdir(parents=True, exist_ok=True)
        session_log = Path(
            os.getenv("PRD_SESSION_LOG", str(output_dir / "sessions.jsonl"))
        )
        session_log.parent.mkdir(parents=True, exist_ok=True)
        redis_url: Optional[str] = os.getenv(
            "PRD_REDIS_URL", "redis://localhost:6379/0"
        )
        if redis_url is not None and not redis_url.strip():
            redis_url = None

        follow_up_threshold = _int_from_env(
            "PRD_FOLLOW_UP_THRESHOLD", default=75, minimum=0
        )
        if follow_up_threshold > 100:
            raise RuntimeError("PRD_FOLLOW_UP_THRESHOLD must be at most 100")
        policy = ConversationPolicy(
            follow_up_threshold=follow_up_threshold,
            max_field_attempts=_int_from_env(
                "PRD_MAX_FIELD_ATTEMPTS", default=2, minimum=1
            ),
            compression_prefix_chars=_int_from_env(
                "PRD_COMPRESSION_PREFIX_CHARS", default=100, minimum=1
            ),
        )

        level_name = os.getenv("PRD_LOG_LEVEL", "INFO").strip().upper()
        log_level = logging.getLevelName(level_name)
        if not isinstance(log_level, int):
            raise RuntimeError(f"Unsupported PRD_LOG_LEVEL: {level_name}")

        return cls(
            output_dir=output_dir,
            session_log=session_log,
            redis_url=redis_url,
            log_level=log_level,
            policy=policy,
        )


def _int_from_env(name: str, *, default: int, minimum: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}")
    return value


def _ensure_dotenv() -> None:
    """Load dotenv variables and provide a helpful error if missing."""

    try:
        dotenv_module = import_module("dotenv")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dep
        raise RuntimeError(
            "python-dotenv is required. Install with `pip install "
            "python-dotenv`."
        ) from exc

    load_dotenv = getattr(dotenv_module, "load_dotenv")
    load_dotenv()
