"""Derive a support ticket from a compiled session record."""

from __future__ import annotations

import json
from typing import Any

from helpline.schemas import SessionRecord, Ticket

TITLE_LENGTH = 30
MIN_TITLE_LENGTH = 5
MIN_DESCRIPTION_LENGTH = 10

FALLBACK_TITLE = "Help request"
FALLBACK_DESCRIPTION = "The user requested help but did not describe the issue in detail."

URGENT_KEYWORDS = ("urgent", "critical")


def build_title(description: str) -> str:
    title = description[:TITLE_LENGTH]
    if len(description) > TITLE_LENGTH:
        title += "..."
    if len(title) < MIN_TITLE_LENGTH:
        return FALLBACK_TITLE
    return title


def build_description(description: str) -> str:
    if len(description) < MIN_DESCRIPTION_LENGTH:
        return FALLBACK_DESCRIPTION
    return description


def has_errors(record: SessionRecord) -> bool:
    return bool(record.diagnostics and record.diagnostics.errors)


def derive_priority(record: SessionRecord) -> str:
    """medium by default, high with diagnostics errors, urgent on keywords.

    The keyword check wins over the error check.
    """
    text = record.issue.description.lower()
    if any(keyword in text for keyword in URGENT_KEYWORDS):
        return "urgent"
    if has_errors(record):
        return "high"
    return "medium"


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def build_metadata(record: SessionRecord) -> dict[str, str]:
    metadata = {key: _stringify(value) for key, value in record.to_json_dict().items()}
    workspace = record.workspace
    metadata.update({
        "sessionId": record.session.session_id,
        "timestamp": record.session.timestamp,
        "hasErrors": _stringify(has_errors(record)),
        "conversationLength": str(len(record.conversation.messages)),
        "workspaceFilesCount": str(workspace.total_files if workspace else 0),
    })
    return metadata


def build_ticket(record: SessionRecord) -> Ticket:
    description = record.issue.description
    return Ticket(
        title=build_title(description),
        description=build_description(description),
        priority=derive_priority(record),
        metadata=build_metadata(record),
    )
