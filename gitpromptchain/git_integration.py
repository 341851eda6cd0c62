"""Git integration - capture file diffs and commit information via the git CLI."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .diff_stats import (
    change_type_from_status,
    classify_change,
    parse_diff_stats,
    parse_numstat,
    parse_porcelain_status,
)
from .models import ChangeType, FileDiff

logger = logging.getLogger(__name__)


class GitError(Exception):
    """A git command failed or git is not available."""
    pass


class GitIntegration:
    """
    Read-mostly access to a git working tree.

    Usage:
        git = GitIntegration(Path.cwd())
        diffs = git.get_uncommitted_diffs()
        sha = git.get_last_commit_sha()
    """

    def __init__(self, repo_path: Path | str, timeout: float = 10):
        self.repo_path = Path(repo_path)
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        """
        Run a git command in the repository.

        Returns:
            stdout of the command

        Raises:
            GitError: If git is missing, times out or exits non-zero
        """
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise GitError(f"git {args[0]} failed: {e}") from e

        if result.returncode != 0:
            raise GitError(f"git {' '.join(args)}: {result.stderr.strip()}")
        return result.stdout

    def is_repository(self) -> bool:
        try:
            return self._run("rev-parse", "--is-inside-work-tree").strip() == "true"
        except GitError:
            return False

    def get_current_branch(self) -> str:
        return self._run("rev-parse", "--abbrev-ref", "HEAD").strip()

    def get_last_commit_sha(self) -> str:
        """Full SHA of HEAD, or "" when the repository has no commits."""
        try:
            return self._run("log", "-1", "--format=%H").strip()
        except GitError as e:
            logger.debug(f"No HEAD commit: {e}")
            return ""

    def get_file_diff(self, file_path: str, change_type: ChangeType | None = None) -> str:
        """
        Raw unified diff of one file against HEAD.

        Added files fall back to a plain working-tree diff when HEAD has
        nothing to compare against.
        """
        try:
            return self._run("diff", "HEAD", "--", file_path)
        except GitError:
            if change_type == ChangeType.ADDED:
                return self._run("diff", "--", file_path)
            raise

    def get_uncommitted_diffs(self) -> list[FileDiff]:
        """
        FileDiffs for every changed-but-uncommitted file.

        Returns:
            List of FileDiff, or [] if git fails
        """
        diffs: list[FileDiff] = []
        try:
            status = self._run("status", "--porcelain", "--untracked-files=all")
            for code, path in parse_porcelain_status(status):
                change_type = change_type_from_status(code)
                if change_type is None:
                    continue

                try:
                    diff = self.get_file_diff(path, change_type)
                except GitError as e:
                    logger.debug(f"No diff for {path}: {e}")
                    diff = ""

                stats = parse_diff_stats(diff)
                diffs.append(FileDiff(
                    file_path=path,
                    change_type=change_type,
                    diff=diff,
                    lines_added=stats.added,
                    lines_deleted=stats.deleted,
                ))
        except GitError as e:
            logger.error(f"Failed to get uncommitted diffs: {e}")
            return []

        return diffs

    def get_commit_diffs(self, commit_sha: str) -> list[FileDiff]:
        """
        FileDiffs for the changes introduced by commit_sha.

        Files come from --numstat. Counts and change type follow the raw diff
        when there is one, so they agree with parse_diff_stats; binary files
        keep the numstat values.

        Returns:
            List of FileDiff, or [] if git fails
        """
        parent = f"{commit_sha}~1"
        diffs: list[FileDiff] = []
        try:
            numstat = self._run("diff", "--numstat", parent, commit_sha)
            for entry in parse_numstat(numstat):
                diff = self._run("diff", parent, commit_sha, "--", entry.path)
                added, deleted = entry.insertions, entry.deletions
                if diff and not entry.binary:
                    stats = parse_diff_stats(diff)
                    added, deleted = stats.added, stats.deleted
                diffs.append(FileDiff(
                    file_path=entry.path,
                    change_type=classify_change(added, deleted, entry.binary),
                    diff=diff,
                    lines_added=added,
                    lines_deleted=deleted,
                ))
        except GitError as e:
            logger.error(f"Failed to get diffs for commit {commit_sha}: {e}")
            return []

        return diffs

    def commit(self, message: str) -> str:
        """Stage everything, commit, and return the new HEAD SHA."""
        self._run("add", ".")
        self._run("commit", "-m", message)
        return self.get_last_commit_sha()


__all__ = ["GitIntegration", "GitError"]
