"""Pydantic models for help requests, session records and tickets.

Wire format is camelCase (``rootPath``, ``solutionsAttempted``); Python code
uses snake_case attributes. Every optional section validates to ``None`` or an
empty collection so downstream code never has to tell "missing" apart from
"empty".
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

import pydantic
from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    WithJsonSchema,
)
from pydantic.alias_generators import to_camel

from helpline.errors import ValidationError

Role = Literal["system", "user", "assistant", "tool"]
LogLevel = Literal["debug", "info", "warn", "error"]
Priority = Literal["low", "medium", "high", "urgent"]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# Directory tree
# ============================================================


class FileEntry(BaseModel):
    kind: Literal["file"] = "file"


class DirectoryEntry(BaseModel):
    kind: Literal["directory"] = "directory"
    children: dict[str, TreeEntry] = Field(default_factory=dict)


TreeEntry = Annotated[Union[FileEntry, DirectoryEntry], Field(discriminator="kind")]

# children refers to TreeEntry, which only exists now
DirectoryEntry.model_rebuild()


MAX_TREE_DEPTH = 64


def _tag_tree(value: Any) -> Any:
    """Turn the wire mapping (null = file, object = directory) into tagged entries."""
    if not isinstance(value, Mapping):
        return value
    return _tag_level(value, 1)


def _tag_level(value: Mapping[str, Any], depth: int) -> dict[str, Any]:
    if depth > MAX_TREE_DEPTH:
        raise ValueError(f"structure nested too deeply (more than {MAX_TREE_DEPTH} levels)")
    tagged: dict[str, Any] = {}
    for name, child in value.items():
        if child is None:
            tagged[name] = {"kind": "file"}
        elif isinstance(child, (FileEntry, DirectoryEntry)):
            tagged[name] = child
        elif isinstance(child, Mapping):
            tagged[name] = {"kind": "directory", "children": _tag_level(child, depth + 1)}
        else:
            raise ValueError(
                f"entry {name!r} must be null (file) or an object (directory)"
            )
    return tagged


def tree_to_mapping(tree: Mapping[str, FileEntry | DirectoryEntry]) -> dict[str, Any]:
    """Inverse of the tagging: back to the nested null/object mapping."""
    return {
        name: None if isinstance(entry, FileEntry) else tree_to_mapping(entry.children)
        for name, entry in tree.items()
    }


DirectoryTree = Annotated[
    dict[str, TreeEntry],
    BeforeValidator(_tag_tree),
    PlainSerializer(tree_to_mapping),
    WithJsonSchema({
        "type": "object",
        "description": (
            "Directory structure as a nested object: a null value is a file, "
            "an object value is a sub-directory"
        ),
        "additionalProperties": {"type": ["object", "null"]},
    }),
]


# ============================================================
# Request sections
# ============================================================


class SessionInfo(_Model):
    session_id: str | None = Field(
        None, description="Session identifier (UUID). Generated when omitted."
    )
    timestamp: str | None = Field(
        None, description="ISO timestamp of the request. Generated when omitted."
    )


class Message(_Model):
    role: Role = Field(
        ...,
        description=(
            "Message sender: 'user' for human messages, 'assistant' for AI responses, "
            "'system' for system messages, 'tool' for tool outputs"
        ),
    )
    content: str = Field(..., description="The actual message content")
    timestamp: str | None = Field(None, description="When the message was sent (ISO timestamp)")


class Conversation(_Model):
    messages: list[Message] = Field(
        ...,
        description=(
            "Conversation messages leading up to the help request, oldest first. "
            "Include recent context that helps understand the issue."
        ),
    )


class Issue(_Model):
    description: str = Field(
        ..., description="Clear description of the problem that needs human assistance"
    )
    additional_context: str | None = Field(
        None, description="Any additional context, error messages, or relevant information"
    )


class FileDetail(_Model):
    path: str = Field(..., description="Path relative to the workspace root (e.g. 'src/main.py')")
    size: int = Field(..., description="File size in bytes")
    lines: int | None = Field(None, description="Number of lines in the file")
    hash: str | None = Field(None, description="File hash for change detection")
    diff: str | None = Field(None, description="Recent changes to the file (git diff format)")
    last_modified: str | None = Field(None, description="When the file was last modified (ISO timestamp)")


class WorkspaceState(_Model):
    root_path: str = Field(..., description="Absolute path to the workspace/project root directory")
    files: list[FileDetail] = Field(
        default_factory=list, description="Files in the workspace relevant to the issue"
    )
    structure: DirectoryTree = Field(default_factory=dict)
    total_files: int = Field(0, description="Total number of files (recomputed by the server)")
    recent_files: list[str] = Field(
        default_factory=list, description="Recently modified file paths (recomputed by the server)"
    )
    file_types: dict[str, int] = Field(
        default_factory=dict, description="File count per extension (computed by the server)"
    )


class ErrorDetail(_Model):
    message: str
    stack: str | None = None
    file: str | None = None
    line: int | None = None


class LogEntry(_Model):
    level: LogLevel
    message: str
    timestamp: str | None = None
    metadata: dict[str, Any] | None = None


class Diagnostics(_Model):
    errors: list[ErrorDetail] = Field(default_factory=list)
    warnings: list[ErrorDetail] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)


class SolutionAttempt(_Model):
    description: str
    steps: str | None = None
    success: bool
    resulting_errors: list[ErrorDetail] = Field(default_factory=list)
    timestamp: str | None = None


class EnvironmentInfo(_Model):
    runtime_version: str | None = Field(
        None,
        validation_alias=AliasChoices("runtimeVersion", "nodeVersion", "runtime_version"),
        description="Language runtime version",
    )
    platform: str | None = None
    cwd: str | None = None
    env_vars: dict[str, str] | None = Field(
        None, description="Relevant environment variables. Never include secrets."
    )


class Dependency(_Model):
    name: str
    version: str


class VCSInfo(_Model):
    branch: str | None = None
    commit_hash: str | None = None
    remote_url: str | None = None


class PerformanceMetrics(_Model):
    cpu_usage: float | None = None
    memory_usage: float | None = None
    execution_time_ms: float | None = None


class HelpRequest(_Model):
    """Arguments of the ``request_help`` tool."""

    session: SessionInfo | None = None
    conversation: Conversation = Field(
        ..., description="REQUIRED: Recent conversation messages that led to this help request"
    )
    issue: Issue = Field(..., description="REQUIRED: The core issue that needs help")
    workspace: WorkspaceState | None = Field(
        None, description="RECOMMENDED: The user's workspace/project if relevant to the issue"
    )
    diagnostics: Diagnostics | None = Field(
        None, description="OPTIONAL: Error messages, warnings, or logs related to the issue"
    )
    solutions_attempted: list[SolutionAttempt] = Field(
        default_factory=list, description="OPTIONAL: Previous attempts to solve the issue"
    )
    environment: EnvironmentInfo | None = Field(
        None, description="OPTIONAL: System environment details"
    )
    dependencies: list[Dependency] = Field(
        default_factory=list, description="OPTIONAL: Project dependencies if relevant"
    )
    version_control: VCSInfo | None = Field(None, description="OPTIONAL: Git information")
    performance: PerformanceMetrics | None = Field(
        None, description="OPTIONAL: Performance metrics for performance issues"
    )


# ============================================================
# Compiled record, ticket and submission result
# ============================================================


class SessionIdentity(_Model):
    session_id: str
    timestamp: str


class SessionRecord(_Model):
    session: SessionIdentity
    conversation: Conversation
    issue: Issue
    workspace: WorkspaceState | None = None
    diagnostics: Diagnostics | None = None
    solutions_attempted: list[SolutionAttempt] = Field(default_factory=list)
    environment: EnvironmentInfo
    dependencies: list[Dependency] = Field(default_factory=list)
    version_control: VCSInfo | None = None
    performance: PerformanceMetrics | None = None
    active_files: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Ticket(_Model):
    title: str = Field(..., min_length=5)
    description: str = Field(..., min_length=10)
    priority: Priority = "medium"
    metadata: dict[str, str] = Field(default_factory=dict)


class SubmissionResult(_Model):
    ticket_id: str
    status: str
    priority: str | None = None
    ticket_url: str | None = None
    message: str | None = None


def validate_help_request(arguments: Any) -> HelpRequest:
    """Validate raw tool arguments, raising ValidationError with every violation."""
    try:
        return HelpRequest.model_validate(arguments)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e) from e
