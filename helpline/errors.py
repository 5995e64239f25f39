"""Exception types raised by the help request pipeline."""

from __future__ import annotations

import json
from typing import Any

import pydantic


class HelplineError(Exception):
    """Base class for all pipeline failures."""


class ValidationError(HelplineError):
    """Raised when tool arguments do not match the help request schema.

    ``violations`` lists every failing field as ``(location, reason)`` pairs,
    where location is a dotted path such as ``conversation.messages.0.role``.
    """

    def __init__(self, violations: list[tuple[str, str]]) -> None:
        self.violations = violations
        lines = [f"- {loc or '(root)'}: {reason}" for loc, reason in violations]
        super().__init__("Invalid help request:\n" + "\n".join(lines))

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> ValidationError:
        violations = [
            (".".join(str(part) for part in err["loc"]), err["msg"])
            for err in exc.errors()
        ]
        return cls(violations)


class WorkspaceAccessError(HelplineError):
    """A workspace scan or file read failed. Callers degrade, never abort."""


class PersistenceError(HelplineError):
    def __init__(self, message: str, session_id: str | None = None) -> None:
        self.session_id = session_id
        super().__init__(message)


class APIError(HelplineError):
    """Ticket submission failed.

    ``body`` holds the remote server's error payload: parsed JSON when the
    response was JSON, the raw text otherwise, or None for network failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        if body is not None and body != "":
            rendered = body if isinstance(body, str) else json.dumps(body, indent=2)
            message = f"{message}\n\nAPI Error Response:\n{rendered}"
        super().__init__(message)
