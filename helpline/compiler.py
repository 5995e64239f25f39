"""Merge a validated request and captured workspace data into a SessionRecord.

Pure: no disk or network access. Identity and runtime defaults come from
injectable callables so the output is reproducible in tests.
"""

from __future__ import annotations

import os
import platform
import sys
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from helpline.schemas import (
    EnvironmentInfo,
    HelpRequest,
    SessionIdentity,
    SessionRecord,
    WorkspaceState,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _canonical_uuid(value: str | None) -> str | None:
    if not value:
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


def _is_iso_timestamp(value: str | None) -> bool:
    if not value:
        return False
    try:
        # fromisoformat only accepts the "Z" suffix from 3.11 on
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_identity(
    request: HelpRequest,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    clock: Callable[[], datetime] = _utc_now,
) -> SessionIdentity:
    """Use the caller's session id/timestamp when valid, generate otherwise."""
    supplied = request.session
    session_id = supplied.session_id if supplied else None
    timestamp = supplied.timestamp if supplied else None
    return SessionIdentity(
        session_id=_canonical_uuid(session_id) or str(id_factory()),
        timestamp=timestamp if _is_iso_timestamp(timestamp) else _format_timestamp(clock()),
    )


def default_environment() -> EnvironmentInfo:
    return EnvironmentInfo(
        runtime_version=f"{platform.python_implementation()} {platform.python_version()}",
        platform=sys.platform,
        cwd=os.getcwd(),
    )


def _merge_workspace(
    supplied: WorkspaceState, scan: WorkspaceState | None
) -> WorkspaceState:
    # Derived counters never come from the caller
    if scan is None:
        return supplied.model_copy(
            update={"total_files": 0, "recent_files": [], "file_types": {}}
        )
    return supplied.model_copy(
        update={
            "structure": supplied.structure or scan.structure,
            "total_files": scan.total_files,
            "recent_files": list(scan.recent_files),
            "file_types": dict(scan.file_types),
        }
    )


def compile_session_record(
    request: HelpRequest,
    scan: WorkspaceState | None = None,
    samples: dict[str, dict[str, Any]] | None = None,
    *,
    identity: SessionIdentity | None = None,
    environment: Callable[[], EnvironmentInfo] = default_environment,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    clock: Callable[[], datetime] = _utc_now,
) -> SessionRecord:
    """Build the canonical record for one help request.

    Args:
        request: Validated tool arguments.
        scan: Result of scan_workspace, or None if unavailable.
        samples: Result of sample_files, keyed by relative path.
        identity: Pre-resolved session identity. Resolved from the request
            with id_factory/clock when omitted.
        environment: Fallback used when the request carries no environment.
    """
    if identity is None:
        identity = resolve_identity(request, id_factory=id_factory, clock=clock)

    workspace = None
    if request.workspace is not None:
        workspace = _merge_workspace(request.workspace, scan)

    return SessionRecord(
        session=identity,
        conversation=request.conversation,
        issue=request.issue,
        workspace=workspace,
        diagnostics=request.diagnostics,
        solutions_attempted=list(request.solutions_attempted),
        environment=request.environment or environment(),
        dependencies=list(request.dependencies),
        version_control=request.version_control,
        performance=request.performance,
        active_files=dict(samples or {}),
    )
