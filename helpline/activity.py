"""Audit trail of help requests.

One JSON line per tool call, holding identifiers and outcomes only: which
session, which ticket, what the support API answered, how long it took. The
captured context itself lives in the session files, so nothing from the
conversation or workspace is duplicated here.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from helpline.config import Config

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "helpline-activity.jsonl"


class ActivityLog:
    """JSONL file of tool call outcomes.

    ``outcome`` is one of submitted, rejected or failed for request_help and
    found, not_found or failed for get_help_session.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @classmethod
    def for_config(cls, config: Config) -> ActivityLog:
        return cls(config.activity_log_path or config.sessions_dir / LOG_FILE_NAME)

    @property
    def path(self) -> Path:
        return self._path

    def record(
        self,
        tool_name: str,
        session_id: str | None,
        outcome: str,
        duration_ms: int,
        *,
        ticket_id: str | None = None,
        status: str | None = None,
        priority: str | None = None,
        error: str | None = None,
    ) -> None:
        """Append one entry. A failed write is logged, never raised."""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "tool": tool_name,
            "sessionId": session_id,
            "outcome": outcome,
            "ticketId": ticket_id,
            "status": status,
            "priority": priority,
            "error": error,
            "durationMs": duration_ms,
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.warning(f"Could not record {tool_name} for session {session_id}: {e}")

    def recent(
        self,
        limit: int | None = 20,
        tool_name: str | None = None,
        session_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Most recent entries first, optionally narrowed to one tool or session."""
        if not self._path.exists():
            return []

        matches = []
        for line in self._path.read_text(encoding="utf-8").splitlines():
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(entry, dict):
                continue
            if tool_name and entry.get("tool") != tool_name:
                continue
            if session_id and entry.get("sessionId") != session_id:
                continue
            matches.append(entry)

        return matches[::-1][:limit]

