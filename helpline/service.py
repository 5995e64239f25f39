"""The help request pipeline behind the MCP tools.

validate -> scan -> sample -> compile -> persist -> ticket -> dispatch.
Every failure after validation is turned into a readable message telling the
agent to stop troubleshooting; nothing propagates to the tool host.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any

from helpline.activity import ActivityLog
from helpline.api.dispatcher import Dispatcher, create_dispatcher
from helpline.compiler import compile_session_record, resolve_identity
from helpline.config import Config
from helpline.errors import APIError, PersistenceError, ValidationError
from helpline.schemas import (
    HelpRequest,
    SessionIdentity,
    SessionInfo,
    SessionRecord,
    SubmissionResult,
    Ticket,
    validate_help_request,
)
from helpline.storage.session_store import SessionStore
from helpline.tickets import build_ticket, has_errors
from helpline.workspace import sample_files, scan_workspace

logger = logging.getLogger(__name__)

ISSUE_PREVIEW_LENGTH = 100

NEXT_STEPS = [
    "Open the ticket link to confirm the request and sign in if prompted",
    "Review the captured context in the session file",
    "Use the ticket link to track progress and talk to support",
    "Quote the session ID and ticket ID when discussing the issue",
]


def context_summary(record: SessionRecord) -> dict[str, Any]:
    description = record.issue.description
    preview = description[:ISSUE_PREVIEW_LENGTH]
    if len(description) > ISSUE_PREVIEW_LENGTH:
        preview += "..."
    workspace = record.workspace
    return {
        "issueDescription": preview,
        "conversationLength": len(record.conversation.messages),
        "activeFilesCount": len(workspace.files) if workspace else 0,
        "workspaceFilesCount": workspace.total_files if workspace else 0,
        "hasErrors": has_errors(record),
        "hasDiagnostics": record.diagnostics is not None,
    }


def format_success(
    identity: SessionIdentity,
    ticket: Ticket,
    result: SubmissionResult,
    record: SessionRecord,
    session_path: Path,
) -> str:
    summary = context_summary(record)
    lines = [
        "STOP DIAGNOSING - HUMAN HELP REQUESTED",
        "",
        "Please inform the user: their help request was captured and a support "
        "ticket was submitted.",
        "",
        f"Ticket ID: {result.ticket_id}",
        f"Session ID: {identity.session_id}",
        f"Priority: {result.priority or ticket.priority}",
        f"Status: {result.status}",
        f"Ticket Link: {result.ticket_url or '(not provided)'}",
    ]
    if result.message:
        lines.append(f"Message: {result.message}")
    lines += [
        f"Session File: {session_path}",
        "",
        "Captured context:",
        json.dumps(summary, indent=2),
        "",
        "Next steps:",
        *[f"- {step}" for step in NEXT_STEPS],
        "",
        "Ask the user to open the ticket link. DO NOT CONTINUE TROUBLESHOOTING.",
    ]
    return "\n".join(lines)


def format_validation_error(error: ValidationError) -> str:
    return (
        "HELP REQUEST NOT SENT - INVALID ARGUMENTS\n\n"
        f"{error}\n\n"
        "Fix the fields listed above and call request_help again."
    )


def format_failure(session_id: str, error: Exception) -> str:
    if isinstance(error, PersistenceError):
        headline = "There was an error saving the help request"
        details = str(error)
    elif isinstance(error, APIError):
        headline = "There was an error sending the help request to the support API"
        details = str(error)
    else:
        headline = "There was an unexpected error while processing the help request"
        details = f"{type(error).__name__}: {error}"

    message = (
        "STOP DIAGNOSING - ERROR IN HELP REQUEST\n\n"
        f"Please inform the user: {headline} (Session ID: {session_id}).\n\n"
        f"Error Details:\n{details}"
    )
    if isinstance(error, APIError) and error.body is not None:
        message += (
            "\n\nThis error came directly from the support API. Relay the API "
            "response above to the user."
        )
    message += (
        "\n\nAdvise the user to try again or contact support directly. "
        "DO NOT CONTINUE TROUBLESHOOTING."
    )
    return message


class HelpService:
    """Runs help requests against one store and one dispatcher."""

    def __init__(
        self,
        store: SessionStore,
        dispatcher: Dispatcher,
        payload_mode: str = "ticket",
        activity: ActivityLog | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._payload_mode = payload_mode
        self._activity = activity

    @classmethod
    def from_config(cls, config: Config) -> HelpService:
        return cls(
            store=SessionStore(config.sessions_dir),
            dispatcher=create_dispatcher(config),
            payload_mode=config.payload_mode,
            activity=ActivityLog.for_config(config),
        )

    @property
    def store(self) -> SessionStore:
        return self._store

    def _record(
        self,
        tool_name: str,
        session_id: str | None,
        outcome: str,
        started: float,
        **details: Any,
    ) -> None:
        if self._activity is None:
            return
        duration_ms = int((time.monotonic() - started) * 1000)
        self._activity.record(tool_name, session_id, outcome, duration_ms, **details)

    async def capture(
        self, request: HelpRequest, identity: SessionIdentity
    ) -> SessionRecord:
        scan = None
        samples: dict[str, dict[str, Any]] = {}
        workspace = request.workspace
        if workspace is not None:
            scan = await asyncio.to_thread(scan_workspace, workspace.root_path)
            if workspace.files:
                samples = await asyncio.to_thread(
                    sample_files, [f.path for f in workspace.files], workspace.root_path
                )
        return compile_session_record(request, scan, samples, identity=identity)

    def _payload(
        self, request: HelpRequest, identity: SessionIdentity, ticket: Ticket
    ) -> dict[str, Any]:
        if self._payload_mode == "raw":
            stamped = request.model_copy(update={
                "session": SessionInfo(
                    session_id=identity.session_id, timestamp=identity.timestamp
                ),
            })
            return stamped.model_dump(mode="json", by_alias=True)
        return ticket.model_dump(mode="json", by_alias=True)

    async def request_help(self, arguments: Any) -> str:
        started = time.monotonic()
        try:
            request = validate_help_request(arguments)
        except ValidationError as e:
            logger.warning(f"Rejected help request with {len(e.violations)} invalid field(s)")
            fields = ", ".join(loc or "(root)" for loc, _ in e.violations)
            self._record("request_help", None, "rejected", started, error=f"invalid: {fields}")
            return format_validation_error(e)

        identity = resolve_identity(request)
        session_id = identity.session_id
        logger.info(f"Help request initiated (session {session_id}, {identity.timestamp})")

        try:
            record = await self.capture(request, identity)
            session_path = await asyncio.to_thread(self._store.put, session_id, record)
            logger.info(
                f"Help context captured (session {session_id}): "
                f"{len(record.conversation.messages)} messages, "
                f"{len(record.active_files)} active files, "
                f"{record.workspace.total_files if record.workspace else 0} workspace files"
            )

            ticket = build_ticket(record)
            result = await self._dispatcher.submit(
                self._payload(request, identity, ticket), session_id
            )
        except Exception as e:
            logger.exception(f"Error processing help request (session {session_id})")
            self._record(
                "request_help", session_id, "failed", started,
                error=f"{type(e).__name__}: {e}".splitlines()[0],
            )
            return format_failure(session_id, e)

        logger.info(
            f"Help request completed (session {session_id}): "
            f"ticket {result.ticket_id}, status {result.status}"
        )
        self._record(
            "request_help", session_id, "submitted", started,
            ticket_id=result.ticket_id,
            status=result.status,
            priority=result.priority or ticket.priority,
        )
        return format_success(identity, ticket, result, record, session_path)

    def get_session(self, session_id: str) -> str:
        started = time.monotonic()
        try:
            record = self._store.get(session_id)
        except PersistenceError as e:
            logger.error(f"Error retrieving help session {session_id}: {e}")
            self._record("get_help_session", session_id, "failed", started, error=str(e))
            return json.dumps({
                "success": False,
                "sessionId": session_id,
                "error": "Failed to retrieve session data",
                "details": str(e),
            })

        if record is None:
            self._record("get_help_session", session_id, "not_found", started)
            return json.dumps({
                "success": False,
                "error": "Session not found",
                "sessionId": session_id,
            })

        logger.info(f"Help session retrieved (session {session_id})")
        self._record("get_help_session", session_id, "found", started)
        return json.dumps(
            {"success": True, "sessionId": session_id, "data": record.to_json_dict()},
            indent=2,
            ensure_ascii=False,
        )
