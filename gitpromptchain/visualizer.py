"""
Text rendering of stored prompt chains for terminal review.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from .models import ChangeType

if TYPE_CHECKING:
    from .models import FileDiff, PromptChain, PromptChainDocument, PromptStep

HEAVY_RULE = "═" * 63
LIGHT_RULE = "─" * 63
DIFF_PREVIEW_LINES = 5
TABLE_WIDTH = 60
TABLE_VALUE_WIDTH = 36

CHANGE_PREFIXES: dict[ChangeType, str] = {
    ChangeType.ADDED: "[+]",
    ChangeType.DELETED: "[-]",
    ChangeType.MODIFIED: "[*]",
}


def format_duration(ms: int | float) -> str:
    """Format milliseconds as "850ms", "42s", "3m 5s" or "1h 2m 3s"."""
    ms = int(ms)
    if ms < 1000:
        return f"{ms}ms"
    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m {secs}s"


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.split("\n"))


def _pad(text: str, width: int) -> str:
    return text[:width].ljust(width)


class ChainVisualizer:
    """Render PromptChainDocuments as human-readable text."""

    @classmethod
    def visualize_chain(cls, document: "PromptChainDocument") -> str:
        """Full chain rendering: header, then every step with its file changes."""
        chain = document.chain
        repository = document.metadata.repository
        lines = [
            HEAVY_RULE,
            "PROMPT CHAIN VISUALIZATION".center(63).rstrip(),
            HEAVY_RULE,
            "",
            f"Chain ID:     {chain.chain_id}",
            f"Repository:   {repository.name if repository else 'Unknown'}",
            f"Started:      {chain.start_time.isoformat()}",
        ]
        if chain.end_time:
            duration = (chain.end_time - chain.start_time) // timedelta(milliseconds=1)
            lines.append(f"Ended:        {chain.end_time.isoformat()}")
            lines.append(f"Duration:     {format_duration(max(0, duration))}")
        if chain.commit_sha:
            lines.append(f"Commit:       {chain.commit_sha}")
        if chain.branch:
            lines.append(f"Branch:       {chain.branch}")
        if chain.summary:
            lines.append(f"Summary:      {chain.summary}")
        lines.append(f"Steps:        {len(chain.steps)}")
        lines.extend(["", LIGHT_RULE, ""])

        for number, step in enumerate(chain.steps, start=1):
            lines.append(cls.visualize_step(step, number))

        lines.extend([
            HEAVY_RULE,
            "END OF CHAIN".center(63).rstrip(),
            HEAVY_RULE,
        ])
        return "\n".join(lines) + "\n"

    @classmethod
    def visualize_step(cls, step: "PromptStep", number: int) -> str:
        lines = [
            f"┌─ STEP {number} " + "─" * 52,
            f"│ Timestamp: {step.timestamp.isoformat()}",
            f"│ ID: {step.id}",
            "└" + "─" * 62,
            "",
            "PROMPT:",
            _indent(step.prompt, "  "),
            "",
            "RESPONSE:",
            _indent(step.response, "  "),
            "",
        ]
        if step.file_diffs:
            lines.append(f"FILES CHANGED ({len(step.file_diffs)}):")
            lines.extend(cls.visualize_file_diff(d) for d in step.file_diffs)
        else:
            lines.append("FILES CHANGED: None")
        lines.append(LIGHT_RULE)
        return "\n".join(lines) + "\n"

    @classmethod
    def visualize_file_diff(cls, file_diff: "FileDiff") -> str:
        change_type = ChangeType(file_diff.change_type)
        lines = [
            f"  {CHANGE_PREFIXES[change_type]} {file_diff.file_path} ({change_type.value})",
            f"      +{file_diff.lines_added} -{file_diff.lines_deleted}",
        ]
        preview = cls.diff_preview(file_diff.diff)
        if preview:
            lines.append(_indent(preview, "      "))
        return "\n".join(lines)

    @staticmethod
    def diff_preview(diff: str, max_lines: int = DIFF_PREVIEW_LINES) -> str:
        """First max_lines of +/-/@@ lines, with a truncation marker when cut."""
        relevant = [
            line for line in diff.split("\n")
            if line.startswith(("+", "-", "@@"))
        ]
        preview = "\n".join(relevant[:max_lines])
        if len(relevant) > max_lines:
            preview += "\n... (diff truncated)"
        return preview

    @staticmethod
    def render_metrics_table(document: "PromptChainDocument") -> str:
        """Boxed table of the document's stored metrics."""
        metrics = document.metadata.metrics
        if metrics is None:
            return "No metrics available for this chain"

        chain = document.chain
        styles = metrics.prompts.style_counts
        top = "╔" + "═" * TABLE_WIDTH + "╗"
        mid = "╠" + "═" * TABLE_WIDTH + "╣"
        bottom = "╚" + "═" * TABLE_WIDTH + "╝"

        def title(text: str) -> str:
            return "║" + text.center(TABLE_WIDTH) + "║"

        def row(label: str, value: object) -> str:
            return f"║ {label:<19}{_pad(str(value), TABLE_VALUE_WIDTH)}    ║"

        lines = [
            top,
            title("CHAIN METRICS"),
            mid,
            row("Chain ID:", chain.chain_id),
            row("Summary:", chain.summary or "N/A"),
            mid,
            title("TIME & PROGRESS"),
            mid,
            row("Duration:", format_duration(metrics.duration_ms)),
            row("Total Steps:", len(chain.steps)),
            row("Steps w/ Changes:", metrics.modification_steps),
            mid,
            title("FILE CHANGES"),
            mid,
            row("Files Changed:", metrics.unique_files_changed),
            row("Lines Added:", metrics.total_lines_added),
            row("Lines Deleted:", metrics.total_lines_deleted),
            row("Net Change:", metrics.total_lines_added - metrics.total_lines_deleted),
            mid,
            title("PROMPT ANALYSIS"),
            mid,
            row("Total Characters:", metrics.prompts.total_length_chars),
            row("Avg Characters:", metrics.prompts.avg_length_chars),
            row("Questions (?):", styles.interrogative),
            row("Commands/Actions:", styles.imperative),
            row("Descriptions:", styles.narrative),
            bottom,
        ]
        return "\n".join(lines)

    @staticmethod
    def generate_summary(chain: "PromptChain") -> str:
        """One-line summary: prompt count, unique files and line totals."""
        files: set[str] = set()
        added = 0
        deleted = 0
        for step in chain.steps:
            for file_diff in step.file_diffs:
                files.add(file_diff.file_path)
                added += file_diff.lines_added
                deleted += file_diff.lines_deleted
        return f"Chain with {len(chain.steps)} prompts, {len(files)} files changed (+{added} -{deleted})"

    @staticmethod
    def to_json(document: "PromptChainDocument") -> str:
        return document.to_json()


__all__ = ["ChainVisualizer", "format_duration"]
