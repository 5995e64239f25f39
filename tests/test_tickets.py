"""Tests for helpline.tickets: title, description, priority and metadata."""

from __future__ import annotations

import json

import pytest

from helpline.schemas import Diagnostics, ErrorDetail, Issue, SessionRecord, WorkspaceState
from helpline.tickets import (
    FALLBACK_DESCRIPTION,
    FALLBACK_TITLE,
    build_ticket,
    build_title,
    derive_priority,
)


def _with(record: SessionRecord, description: str, errors: int = 0) -> SessionRecord:
    diagnostics = None
    if errors:
        diagnostics = Diagnostics(errors=[ErrorDetail(message=f"e{i}") for i in range(errors)])
    return record.model_copy(update={
        "issue": Issue(description=description),
        "diagnostics": diagnostics,
    })


class TestTitleAndDescription:
    def test_short_description_used_verbatim(self, sample_record: SessionRecord):
        ticket = build_ticket(sample_record)
        assert ticket.title == "Build fails with urgent error"
        assert ticket.description == "Build fails with urgent error"

    def test_long_description_truncated(self):
        description = "The deployment pipeline hangs forever on the migration step"
        assert build_title(description) == description[:30] + "..."

    def test_exactly_thirty_chars_not_truncated(self):
        assert build_title("x" * 30) == "x" * 30

    @pytest.mark.parametrize("description", ["", "a", "abcd", "short"])
    def test_minimum_lengths_always_hold(self, sample_record: SessionRecord, description: str):
        ticket = build_ticket(_with(sample_record, description))
        assert len(ticket.title) >= 5
        assert len(ticket.description) >= 10

    def test_fallbacks(self, sample_record: SessionRecord):
        ticket = build_ticket(_with(sample_record, "oops"))
        assert ticket.title == FALLBACK_TITLE
        assert ticket.description == FALLBACK_DESCRIPTION

    def test_five_chars_is_enough_for_title(self, sample_record: SessionRecord):
        ticket = build_ticket(_with(sample_record, "Crash"))
        assert ticket.title == "Crash"
        assert ticket.description == FALLBACK_DESCRIPTION


class TestPriority:
    def test_default_medium(self, sample_record: SessionRecord):
        assert derive_priority(_with(sample_record, "Something is off")) == "medium"

    def test_errors_escalate_to_high(self, sample_record: SessionRecord):
        assert derive_priority(_with(sample_record, "Something is off", errors=2)) == "high"

    def test_empty_diagnostics_stay_medium(self, sample_record: SessionRecord):
        record = sample_record.model_copy(update={
            "issue": Issue(description="Something is off"),
            "diagnostics": Diagnostics(),
        })
        assert derive_priority(record) == "medium"

    @pytest.mark.parametrize("description", [
        "URGENT: prod is down",
        "a Critical bug in checkout",
        "this is noncriticality",
    ])
    def test_keywords_escalate_to_urgent(self, sample_record: SessionRecord, description: str):
        assert derive_priority(_with(sample_record, description)) == "urgent"

    def test_keyword_beats_errors(self, sample_record: SessionRecord):
        assert derive_priority(_with(sample_record, "critical failure", errors=1)) == "urgent"


class TestMetadata:
    def test_values_are_strings(self, sample_record: SessionRecord):
        metadata = build_ticket(sample_record).metadata
        assert all(isinstance(v, str) for v in metadata.values())

    def test_top_level_fields_serialized(self, sample_record: SessionRecord):
        metadata = build_ticket(sample_record).metadata
        for key in (
            "session", "conversation", "issue", "workspace", "diagnostics",
            "solutionsAttempted", "environment", "dependencies",
            "versionControl", "performance", "activeFiles",
        ):
            assert key in metadata
        assert json.loads(metadata["conversation"])["messages"][0]["content"] == "build fails"
        assert metadata["workspace"] == "null"
        assert metadata["dependencies"] == "[]"

    def test_convenience_fields(self, sample_record: SessionRecord):
        metadata = build_ticket(sample_record).metadata
        assert metadata["sessionId"] == sample_record.session.session_id
        assert metadata["timestamp"] == sample_record.session.timestamp
        assert metadata["hasErrors"] == "false"
        assert metadata["conversationLength"] == "1"
        assert metadata["workspaceFilesCount"] == "0"

    def test_workspace_count_and_errors(self, sample_record: SessionRecord):
        record = _with(sample_record, "Something is off", errors=1).model_copy(update={
            "workspace": WorkspaceState(root_path="/p", total_files=7),
        })
        metadata = build_ticket(record).metadata
        assert metadata["hasErrors"] == "true"
        assert metadata["workspaceFilesCount"] == "7"
