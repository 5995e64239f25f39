"""Tests for helpline.compiler: merging requests into session records."""

from __future__ import annotations

import uuid
from pathlib import Path

from conftest import FIXED_ID, FIXED_NOW

from helpline.compiler import compile_session_record, default_environment, resolve_identity
from helpline.schemas import EnvironmentInfo, HelpRequest, SessionIdentity, WorkspaceState
from helpline.workspace import scan_workspace


def _compile(arguments: dict, **kwargs):
    kwargs.setdefault("id_factory", lambda: FIXED_ID)
    kwargs.setdefault("clock", lambda: FIXED_NOW)
    return compile_session_record(HelpRequest.model_validate(arguments), **kwargs)


class TestResolveIdentity:
    def test_generates_when_absent(self, minimal_arguments: dict):
        identity = resolve_identity(
            HelpRequest.model_validate(minimal_arguments),
            id_factory=lambda: FIXED_ID,
            clock=lambda: FIXED_NOW,
        )
        assert identity.session_id == str(FIXED_ID)
        assert identity.timestamp == "2025-06-22T14:44:38.000Z"

    def test_uses_supplied_values(self, minimal_arguments: dict):
        minimal_arguments["session"] = {
            "sessionId": "0f8fad5b-d9cb-469f-a165-70867728950e",
            "timestamp": "2025-01-01T00:00:00Z",
        }
        identity = resolve_identity(HelpRequest.model_validate(minimal_arguments))
        assert identity.session_id == "0f8fad5b-d9cb-469f-a165-70867728950e"
        assert identity.timestamp == "2025-01-01T00:00:00Z"

    def test_replaces_invalid_values(self, minimal_arguments: dict):
        minimal_arguments["session"] = {"sessionId": "../etc/passwd", "timestamp": "yesterday"}
        identity = resolve_identity(
            HelpRequest.model_validate(minimal_arguments),
            id_factory=lambda: FIXED_ID,
            clock=lambda: FIXED_NOW,
        )
        assert identity.session_id == str(FIXED_ID)
        assert identity.timestamp == "2025-06-22T14:44:38.000Z"

    def test_default_factory_is_unique(self, minimal_arguments: dict):
        request = HelpRequest.model_validate(minimal_arguments)
        ids = {resolve_identity(request).session_id for _ in range(20)}
        assert len(ids) == 20
        for session_id in ids:
            uuid.UUID(session_id)


class TestCompileSessionRecord:
    def test_deterministic_with_injected_identity(self, minimal_arguments: dict, fixed_environment):
        first = _compile(minimal_arguments, environment=lambda: fixed_environment)
        second = _compile(minimal_arguments, environment=lambda: fixed_environment)
        assert first == second

    def test_optional_sections_present_with_defaults(self, minimal_arguments: dict):
        data = _compile(minimal_arguments).to_json_dict()
        assert data["workspace"] is None
        assert data["diagnostics"] is None
        assert data["versionControl"] is None
        assert data["performance"] is None
        assert data["solutionsAttempted"] == []
        assert data["dependencies"] == []
        assert data["activeFiles"] == {}

    def test_synthesizes_environment(self, minimal_arguments: dict):
        record = _compile(minimal_arguments)
        assert record.environment == default_environment()
        assert record.environment.runtime_version
        assert record.environment.platform
        assert record.environment.cwd

    def test_keeps_supplied_environment(self, full_arguments: dict):
        record = _compile(full_arguments)
        assert record.environment == EnvironmentInfo(
            runtime_version="CPython 3.12.3", platform="linux"
        )

    def test_scan_overrides_caller_totals(self, full_arguments: dict, workspace_dir: Path):
        scan = scan_workspace(str(workspace_dir))
        record = _compile(full_arguments, scan=scan)
        assert record.workspace.total_files == 2
        assert record.workspace.file_types == {".md": 1, ".py": 1}
        assert record.workspace.files[0].path == "src/app/main.py"
        # caller sent an empty structure, so the scanned one is used
        assert "src" in record.workspace.structure

    def test_failed_scan_zeroes_totals(self, full_arguments: dict):
        record = _compile(full_arguments, scan=None)
        assert record.workspace.total_files == 0
        assert record.workspace.recent_files == []

    def test_caller_structure_kept(self, full_arguments: dict):
        full_arguments["workspace"]["structure"] = {"only.txt": None}
        scan = WorkspaceState(root_path="/x", structure={"other.txt": None}, total_files=1)
        record = _compile(full_arguments, scan=scan)
        assert list(record.workspace.structure) == ["only.txt"]

    def test_attaches_samples(self, minimal_arguments: dict):
        samples = {"a.py": {"size": 1, "lines": 1, "content": "x"}}
        record = _compile(minimal_arguments, samples=samples)
        assert record.active_files == samples

    def test_explicit_identity(self, minimal_arguments: dict):
        identity = SessionIdentity(session_id="abc", timestamp="2025-01-01T00:00:00Z")
        record = _compile(minimal_arguments, identity=identity)
        assert record.session == identity

    def test_does_not_mutate_request(self, full_arguments: dict, workspace_dir: Path):
        request = HelpRequest.model_validate(full_arguments)
        compile_session_record(request, scan=scan_workspace(str(workspace_dir)))
        assert request.workspace.total_files == 999
