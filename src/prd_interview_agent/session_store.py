"""Persistence utilities for interview session snapshots."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

import redis
from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
SESSION_INDEX_KEY = "sessions:index"


@dataclass(slots=True)
class SessionSummary:
    """Listing row for a stored session."""

    id: str
    saved_at: datetime
    completed: bool
    completed_sections: int
    current_section: Optional[str]
    percent_complete: int

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "SessionSummary":
        snapshot = record.get("snapshot") or {}
        state = snapshot.get("state") or {}
        progress = snapshot.get("progress") or {}
        return cls(
            id=str(record.get("id")),
            saved_at=_parse_timestamp(record.get("saved_at")),
            completed=bool(snapshot.get("completed", False)),
            completed_sections=len(state.get("completed_sections") or []),
            current_section=state.get("current_section"),
            percent_complete=int(progress.get("percent_complete", 0)),
        )


class SessionRepository:
    """Appends session snapshots to JSONL and mirrors the latest into Redis."""

    def __init__(self, archive_path: Path, redis_url: Optional[str]) -> None:
        self._archive_path = archive_path
        self._archive_path.parent.mkdir(parents=True, exist_ok=True)
        self._redis_url = redis_url
        self._redis: Optional[Redis] = None

    @property
    def archive_path(self) -> Path:
        return self._archive_path

    def get_redis_client(self) -> Optional[Redis]:
        """Expose the cached Redis client, if configured."""

        if not self._redis_url:
            return None
        if self._redis is None:
            try:
                self._redis = redis.from_url(  # type: ignore[call-overload]
                    self._redis_url,
                    decode_responses=True,
                )
            except RedisError as exc:  # pragma: no cover - network guarded
                logger.warning("Redis connection failed: %s", exc)
                self._redis = None
        return self._redis

    def save_snapshot(self, snapshot: Mapping[str, Any]) -> str:
        """Persist a session snapshot and return its session id."""

        session_id = str(snapshot.get("id") or "")
        if not session_id:
            raise ValueError("Session snapshot must carry an 'id'")
        saved_at = datetime.now(timezone.utc)
        record: Dict[str, Any] = {
            "id": session_id,
            "saved_at": saved_at.isoformat(),
            "saved_at_ts": saved_at.timestamp(),
            "snapshot": dict(snapshot),
        }
        line = json.dumps(record, ensure_ascii=False)
        with self._archive_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

        client = self.get_redis_client()
        if client:
            key = f"{SESSION_KEY_PREFIX}{session_id}"
            try:
                client.set(key, line)
                client.zadd(SESSION_INDEX_KEY, {session_id: record["saved_at_ts"]})
            except RedisError as exc:  # pragma: no cover - best effort
                logger.warning("Redis persistence failed for %s: %s", key, exc)
        logger.debug("Saved snapshot for session %s", session_id)
        return session_id

    def load_snapshot(self, session_id: str) -> Optional[Dict[str, Any]]:
        record = self._load_record(session_id)
        if record is None:
            return None
        snapshot = record.get("snapshot")
        return snapshot if isinstance(snapshot, dict) else None

    def list_sessions(self, limit: int = 10) -> List[SessionSummary]:
        """Most recently saved sessions first."""

        records = self._redis_records()
        if records is None:
            # newest write first so equal timestamps keep archive order
            records = list(reversed(list(self._latest_jsonl_records().values())))
        summaries = [SessionSummary.from_record(record) for record in records]
        summaries.sort(key=lambda summary: summary.saved_at, reverse=True)
        return summaries[:limit]

    def _load_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        client = self.get_redis_client()
        if client:
            key = f"{SESSION_KEY_PREFIX}{session_id}"
            try:
                raw_value = client.get(key)
            except RedisError as exc:  # pragma: no cover - redis failure path
                logger.warning("Failed to retrieve %s from Redis: %s", key, exc)
                raw_value = None
            record = _decode_record(raw_value)
            if record is not None:
                return record
        return self._latest_jsonl_records().get(session_id)

    def _redis_records(self) -> Optional[List[Dict[str, Any]]]:
        client = self.get_redis_client()
        if not client:
            return None
        try:
            ids: List[str] = client.zrevrange(  # type: ignore[assignment]
                SESSION_INDEX_KEY, 0, -1
            )
            records = []
            for session_id in ids:
                record = _decode_record(client.get(f"{SESSION_KEY_PREFIX}{session_id}"))
                if record is not None:
                    records.append(record)
        except RedisError as exc:  # pragma: no cover - redis failure path
            logger.warning("Failed to list Redis sessions: %s", exc)
            return None
        return records

    def _latest_jsonl_records(self) -> Dict[str, Dict[str, Any]]:
        latest: Dict[str, Dict[str, Any]] = {}
        for record in self._iter_jsonl():
            session_id = str(record["id"])
            latest.pop(session_id, None)
            latest[session_id] = record
        return latest

    def _iter_jsonl(self) -> Iterator[Dict[str, Any]]:
        if not self._archive_path.exists():
            return
        with self._archive_path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                record = _decode_record(raw_line.strip())
                if record is not None and record.get("id"):
                    yield record


def _decode_record(raw_value: Any) -> Optional[Dict[str, Any]]:
    if not raw_value:
        return None
    if isinstance(raw_value, bytes):
        raw_value = raw_value.decode("utf-8")
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed session row: %s", raw_value)
        return None
    return parsed if isinstance(parsed, dict) else None


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Falling back to unix epoch parsing for %s", value)
    return datetime.fromtimestamp(0, tz=timezone.utc)
