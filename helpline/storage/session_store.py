"""File-backed storage for compiled session records."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

import pydantic

from helpline.errors import PersistenceError
from helpline.schemas import SessionRecord

logger = logging.getLogger(__name__)

FILE_PREFIX = "help-session-"

# Session ids become file names, so keep them to a safe alphabet
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class SessionStore:
    """One formatted JSON file per session: ``<dir>/help-session-<id>.json``.

    Writes go to a temporary file in the same directory and are renamed over
    the target, so readers see either the old record or the new one.
    """

    def __init__(self, directory: Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, session_id: str) -> Path:
        return self._dir / f"{FILE_PREFIX}{session_id}.json"

    def put(self, session_id: str, record: SessionRecord) -> Path:
        """Persist record under session_id, replacing any previous version."""
        if not _SAFE_ID.match(session_id):
            raise PersistenceError(f"Invalid session id: {session_id!r}", session_id)

        target = self.path_for(session_id)
        payload = json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False)

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._dir, prefix=f".{target.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.write("\n")
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(
                f"Failed to write session {session_id}: {e}", session_id
            ) from e

        logger.debug(f"Session {session_id} written to {target}")
        return target

    def get(self, session_id: str) -> SessionRecord | None:
        """Load a stored record. Returns None when no such session exists."""
        if not _SAFE_ID.match(session_id):
            return None

        path = self.path_for(session_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(
                f"Failed to read session {session_id}: {e}", session_id
            ) from e

        try:
            return SessionRecord.model_validate(json.loads(text))
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            raise PersistenceError(
                f"Session {session_id} is corrupt: {e}", session_id
            ) from e

    def exists(self, session_id: str) -> bool:
        return bool(_SAFE_ID.match(session_id)) and self.path_for(session_id).exists()
