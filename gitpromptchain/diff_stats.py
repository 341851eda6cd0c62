"""
Diff statistics extracted from raw git output.

Line counting is a textual heuristic, not a diff parser: a line counts as
added when it starts with "+" but not "+++", and as deleted when it starts
with "-" but not "---". Stored documents depend on these exact counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChangeType(str, Enum):
    """Kind of change a FileDiff records."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class DiffStats:
    """Added/deleted line counts for one diff."""

    added: int = 0
    deleted: int = 0


@dataclass(frozen=True)
class NumstatEntry:
    """One row of `git diff --numstat` output."""

    path: str
    insertions: int
    deletions: int
    binary: bool = False


# git status --porcelain letter -> change type; anything else is ignored
_STATUS_CHANGE_TYPES: dict[str, ChangeType] = {
    "M": ChangeType.MODIFIED,
    "A": ChangeType.ADDED,
    "?": ChangeType.ADDED,
    "D": ChangeType.DELETED,
}


def parse_diff_stats(diff: str | None) -> DiffStats:
    """
    Count added and deleted lines in unified-diff text.

    Args:
        diff: Raw unified diff (may be empty or None)

    Returns:
        DiffStats; (0, 0) for empty or malformed input
    """
    if not diff or not isinstance(diff, str):
        return DiffStats()

    added = 0
    deleted = 0
    for line in diff.split("\n"):
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            deleted += 1

    return DiffStats(added=added, deleted=deleted)


def classify_change(insertions: int, deletions: int, binary: bool = False) -> ChangeType:
    """
    Classify a change from an insertion/deletion summary.

    Binary files are always MODIFIED.
    """
    if binary:
        return ChangeType.MODIFIED
    if insertions > 0 and deletions == 0:
        return ChangeType.ADDED
    if deletions > 0 and insertions == 0:
        return ChangeType.DELETED
    return ChangeType.MODIFIED


def change_type_from_status(code: str) -> ChangeType | None:
    """Map a single-letter git status code to a ChangeType, or None to skip."""
    return _STATUS_CHANGE_TYPES.get(code)


def parse_porcelain_status(output: str) -> list[tuple[str, str]]:
    """
    Parse `git status --porcelain` (v1) output.

    Each line is "XY path" where X is the index column and Y the working-tree
    column. The working-tree code wins; a blank working-tree column falls
    back to the index code. Renames ("R  old -> new") report the new path.

    Returns:
        List of (status_code, path) pairs in output order
    """
    entries: list[tuple[str, str]] = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        index_code, worktree_code = line[0], line[1]
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = path.strip().strip('"')
        code = worktree_code if worktree_code != " " else index_code
        entries.append((code, path))
    return entries


def parse_numstat(output: str) -> list[NumstatEntry]:
    """
    Parse `git diff --numstat` output.

    Binary files are reported by git as "-\\t-\\tpath"; they get zero counts
    and binary=True.
    """
    entries: list[NumstatEntry] = []
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        ins, dels, path = parts
        if ins == "-" and dels == "-":
            entries.append(NumstatEntry(path=path, insertions=0, deletions=0, binary=True))
            continue
        try:
            entries.append(NumstatEntry(path=path, insertions=int(ins), deletions=int(dels)))
        except ValueError:
            continue
    return entries


__all__ = [
    "ChangeType",
    "DiffStats",
    "NumstatEntry",
    "parse_diff_stats",
    "classify_change",
    "change_type_from_status",
    "parse_porcelain_status",
    "parse_numstat",
]
