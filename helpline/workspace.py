"""Best-effort capture of workspace state and active file contents.

Nothing in here raises to the caller: an unreadable workspace yields None and
an unreadable file yields an ``{"error": ...}`` entry, both logged as warnings.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from collections import Counter
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from helpline.errors import WorkspaceAccessError
from helpline.schemas import WorkspaceState

logger = logging.getLogger(__name__)

IGNORE_PATTERNS = [
    "node_modules/**",
    ".git/**",
    "logs/**",
    "*.log",
]

MAX_DEPTH = 5
MAX_STAT_FILES = 20
MAX_RECENT_FILES = 10

MAX_ACTIVE_FILES = 5
MAX_FILE_SIZE = 50_000  # bytes
MAX_CONTENT_CHARS = 2000
TOO_LARGE_NOTE = "too large"


def _is_ignored(rel_path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatchcase(rel_path, pattern) for pattern in patterns)


def _raise_walk_error(error: OSError) -> None:
    raise error


def list_workspace_files(
    root: Path,
    ignore: Iterable[str] = IGNORE_PATTERNS,
    max_depth: int = MAX_DEPTH,
) -> list[str]:
    """List files under root as POSIX relative paths, in a stable order.

    Directories and files are visited in sorted order, files of a directory
    before its sub-directories. A root-level file has depth 1.
    """
    patterns = list(ignore)
    files: list[str] = []
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
            rel_dir = Path(dirpath).relative_to(root)
            depth = len(rel_dir.parts)

            if depth >= max_depth - 1:
                dirnames[:] = []
            else:
                # trailing slash lets "dir/**" patterns prune the whole directory
                dirnames[:] = sorted(
                    d for d in dirnames
                    if not _is_ignored((rel_dir / d).as_posix() + "/", patterns)
                )

            for name in sorted(filenames):
                rel = (rel_dir / name).as_posix()
                if not _is_ignored(rel, patterns):
                    files.append(rel)
    except OSError as e:
        raise WorkspaceAccessError(f"Cannot enumerate {root}: {e}") from e
    return files


def build_tree(files: Iterable[str]) -> dict[str, Any]:
    """Nest relative paths into the null-leaf directory mapping."""
    tree: dict[str, Any] = {}
    for rel in files:
        *dirs, name = rel.split("/")
        node = tree
        for d in dirs:
            node = node.setdefault(d, {})
        node[name] = None
    return tree


def _rank_recent(root: Path, files: list[str]) -> list[str]:
    # Only the first MAX_STAT_FILES enumerated files are considered
    stamped: list[tuple[float, str]] = []
    for rel in files[:MAX_STAT_FILES]:
        try:
            stamped.append(((root / rel).stat().st_mtime, rel))
        except OSError:
            continue
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [rel for _, rel in stamped[:MAX_RECENT_FILES]]


def scan_workspace(root_path: str | None) -> WorkspaceState | None:
    """Capture file count, extension histogram, structure and recent files.

    Returns None when the root is missing or cannot be enumerated.
    """
    if not root_path:
        logger.warning("Workspace path not provided, skipping scan")
        return None

    root = Path(root_path)
    if not root.is_dir():
        logger.warning(f"Workspace path does not exist or is not a directory: {root_path}")
        return None

    try:
        files = list_workspace_files(root)
    except WorkspaceAccessError as e:
        logger.warning(f"Workspace scan failed: {e}")
        return None

    file_types = Counter(Path(rel).suffix or "no-extension" for rel in files)

    return WorkspaceState(
        root_path=str(root),
        structure=build_tree(files),
        total_files=len(files),
        recent_files=_rank_recent(root, files),
        file_types=dict(file_types),
    )


def _sample_file(path: str, root_path: str | None) -> dict[str, Any]:
    full_path = Path(root_path) / path if root_path else Path(path)
    try:
        size = full_path.stat().st_size
        if size >= MAX_FILE_SIZE:
            return {"size": size, "note": TOO_LARGE_NOTE}
        with open(full_path, encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError as e:
        raise WorkspaceAccessError(str(e)) from e

    return {
        "size": size,
        "lines": len(content.split("\n")),
        "content": content[:MAX_CONTENT_CHARS],
    }


def sample_files(paths: Iterable[str], root_path: str | None = None) -> dict[str, dict[str, Any]]:
    """Read bounded content for the first MAX_ACTIVE_FILES paths.

    Each entry is ``{size, lines, content}``, ``{size, note}`` for files of
    MAX_FILE_SIZE bytes or more, or ``{error}`` when the file cannot be read.
    """
    samples: dict[str, dict[str, Any]] = {}
    for path in list(paths)[:MAX_ACTIVE_FILES]:
        try:
            samples[path] = _sample_file(path, root_path)
        except WorkspaceAccessError as e:
            logger.warning(f"Could not read active file {path}: {e}")
            samples[path] = {"error": str(e)}
    return samples
