"""Chain metrics - aggregate statistics over a prompt chain."""

from __future__ import annotations

import math
from datetime import timedelta
from enum import Enum

from .models import PromptChain, PromptChainMetrics, PromptStats, StyleCounts


class PromptStyle(str, Enum):
    """Heuristic prompt style."""

    INTERROGATIVE = "interrogative"
    IMPERATIVE = "imperative"
    NARRATIVE = "narrative"


IMPERATIVE_VERBS = frozenset({
    "add", "update", "fix", "create", "remove", "delete", "refactor", "rename",
    "implement", "write", "generate", "optimize", "document", "explain", "show",
})


def classify_prompt_style(prompt: str) -> PromptStyle:
    """
    Classify a prompt as a question, a command or a description.

    Checked in order: trailing "?" (after whitespace) is interrogative; a
    first word from IMPERATIVE_VERBS is imperative; anything else narrative.
    """
    if prompt.rstrip().endswith("?"):
        return PromptStyle.INTERROGATIVE

    words = prompt.split()
    if words and words[0].lower() in IMPERATIVE_VERBS:
        return PromptStyle.IMPERATIVE

    return PromptStyle.NARRATIVE


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def prompt_length(prompt: str) -> int:
    """Prompt length in UTF-16 code units, so emoji count as two."""
    return len(prompt.encode("utf-16-le", "surrogatepass")) // 2


def compute_chain_metrics(chain: PromptChain) -> PromptChainMetrics:
    """
    Compute metrics for a chain. Pure; does not modify the chain.

    Args:
        chain: Chain to analyze (active or ended)

    Returns:
        PromptChainMetrics; duration is 0 while the chain has no end time
    """
    duration_ms = 0
    if chain.end_time is not None:
        duration_ms = max(0, (chain.end_time - chain.start_time) // timedelta(milliseconds=1))

    unique_files: set[str] = set()
    modification_steps = 0
    total_added = 0
    total_deleted = 0
    total_chars = 0
    styles = {style: 0 for style in PromptStyle}

    for step in chain.steps:
        total_chars += prompt_length(step.prompt)
        styles[classify_prompt_style(step.prompt)] += 1

        if step.file_diffs:
            modification_steps += 1
            for file_diff in step.file_diffs:
                unique_files.add(file_diff.file_path)
                total_added += file_diff.lines_added
                total_deleted += file_diff.lines_deleted

    step_count = len(chain.steps)
    avg_chars = _round_half_up(total_chars / step_count) if step_count else 0

    return PromptChainMetrics(
        duration_ms=duration_ms,
        modification_steps=modification_steps,
        unique_files_changed=len(unique_files),
        total_lines_added=total_added,
        total_lines_deleted=total_deleted,
        prompts=PromptStats(
            total_length_chars=total_chars,
            avg_length_chars=avg_chars,
            style_counts=StyleCounts(
                interrogative=styles[PromptStyle.INTERROGATIVE],
                imperative=styles[PromptStyle.IMPERATIVE],
                narrative=styles[PromptStyle.NARRATIVE],
            ),
        ),
    )


__all__ = [
    "PromptStyle",
    "IMPERATIVE_VERBS",
    "classify_prompt_style",
    "prompt_length",
    "compute_chain_metrics",
]
