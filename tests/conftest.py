"""Shared test fixtures for helpline."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest

from helpline.api.dispatcher import MockDispatcher
from helpline.compiler import compile_session_record
from helpline.schemas import EnvironmentInfo, HelpRequest, SessionRecord
from helpline.service import HelpService
from helpline.storage.session_store import SessionStore

FIXED_ID = uuid.UUID("12345678-1234-5678-1234-567812345678")
FIXED_NOW = datetime(2025, 6, 22, 14, 44, 38, tzinfo=timezone.utc)


@pytest.fixture
def minimal_arguments() -> dict:
    return {
        "conversation": {"messages": [{"role": "user", "content": "build fails"}]},
        "issue": {"description": "Build fails with urgent error"},
    }


@pytest.fixture
def full_arguments(workspace_dir: Path) -> dict:
    return {
        "session": {
            "sessionId": "0f8fad5b-d9cb-469f-a165-70867728950e",
            "timestamp": "2025-06-22T14:44:38.000Z",
        },
        "conversation": {
            "messages": [
                {"role": "user", "content": "pytest crashes on import"},
                {"role": "assistant", "content": "Let me check the conftest."},
                {"role": "tool", "content": "ModuleNotFoundError: No module named 'app'"},
            ]
        },
        "issue": {
            "description": "Test suite fails to import the app package after the refactor",
            "additionalContext": "Started after moving app/ into src/",
        },
        "workspace": {
            "rootPath": str(workspace_dir),
            "files": [
                {"path": "src/app/main.py", "size": 42},
                {"path": "README.md", "size": 10},
            ],
            "structure": {},
            "totalFiles": 999,
        },
        "diagnostics": {
            "errors": [{"message": "ModuleNotFoundError: No module named 'app'", "file": "tests/test_main.py", "line": 1}],
            "logs": [{"level": "error", "message": "collection failed"}],
        },
        "solutionsAttempted": [
            {"description": "Reinstalled the package", "success": False},
        ],
        "environment": {"runtimeVersion": "CPython 3.12.3", "platform": "linux"},
        "dependencies": [{"name": "pytest", "version": "8.2.0"}],
        "versionControl": {"branch": "refactor/src-layout", "commitHash": "abc123"},
        "performance": {"executionTimeMs": 1250},
    }


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src" / "app").mkdir(parents=True)
    (root / "src" / "app" / "main.py").write_text("print('hello')\n")
    (root / "README.md").write_text("# project\n")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1\n")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "debug.log").write_text("noise\n")
    return root


@pytest.fixture
def fixed_environment() -> EnvironmentInfo:
    return EnvironmentInfo(runtime_version="CPython 3.12.0", platform="linux", cwd="/srv")


@pytest.fixture
def sample_record(minimal_arguments: dict, fixed_environment: EnvironmentInfo) -> SessionRecord:
    return compile_session_record(
        HelpRequest.model_validate(minimal_arguments),
        environment=lambda: fixed_environment,
        id_factory=lambda: FIXED_ID,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def mock_service(store: SessionStore) -> HelpService:
    return HelpService(store=store, dispatcher=MockDispatcher(delay=0))
