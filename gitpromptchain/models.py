"""
Data model for prompt chains.

Pydantic models for the chain-<id>.json document schema. Attribute names are
snake_case; the JSON on disk uses camelCase field names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from .diff_stats import ChangeType, parse_diff_stats

DOCUMENT_VERSION = "1.0.0"


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class FileDiff(CamelModel):
    """
    One file's change within a step.

    When diff is non-empty the line counts are always derived from it with
    parse_diff_stats; given counts are only kept for an empty diff.
    """

    file_path: str
    change_type: ChangeType
    diff: str = ""
    lines_added: int = Field(default=0, ge=0)
    lines_deleted: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _counts_from_diff(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        diff = data.get("diff")
        if not isinstance(diff, str) or not diff:
            return data

        stats = parse_diff_stats(diff)
        data = {
            k: v for k, v in data.items()
            if k not in ("lines_added", "linesAdded", "lines_deleted", "linesDeleted")
        }
        data["lines_added"] = stats.added
        data["lines_deleted"] = stats.deleted
        return data


class PromptStep(CamelModel):
    """A single prompt/response exchange."""

    id: str
    timestamp: datetime
    prompt: str
    response: str
    file_diffs: list[FileDiff] = Field(default_factory=list)

    model_config = {"frozen": True}


class PromptChain(CamelModel):
    """
    One logical unit of work: a sequence of steps, optionally tied to a commit.

    Steps are appended by ChainLifecycle while the chain is active and are
    never reordered afterwards.
    """

    chain_id: str
    start_time: datetime
    end_time: datetime | None = None
    commit_sha: str | None = None
    branch: str | None = None
    summary: str | None = None
    steps: list[PromptStep] = Field(default_factory=list)


class StyleCounts(CamelModel):
    interrogative: int = 0
    imperative: int = 0
    narrative: int = 0


class PromptStats(CamelModel):
    total_length_chars: int = 0
    avg_length_chars: int = 0
    style_counts: StyleCounts = Field(default_factory=StyleCounts)


class PromptChainMetrics(CamelModel):
    """Aggregate statistics computed from a PromptChain."""

    duration_ms: int = 0
    modification_steps: int = 0
    unique_files_changed: int = 0
    total_lines_added: int = 0
    total_lines_deleted: int = 0
    prompts: PromptStats = Field(default_factory=PromptStats)


class RepositoryInfo(CamelModel):
    name: str
    path: str


class PromptChainMetadata(CamelModel):
    """Metadata block of a stored document."""

    version: str = DOCUMENT_VERSION
    created: datetime
    repository: RepositoryInfo | None = None
    metrics: PromptChainMetrics | None = None


class PromptChainDocument(CamelModel):
    """The persisted unit: one document per chain."""

    metadata: PromptChainMetadata
    chain: PromptChain

    def to_json(self, indent: int = 2) -> str:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


__all__ = [
    "DOCUMENT_VERSION",
    "ChangeType",
    "FileDiff",
    "PromptStep",
    "PromptChain",
    "StyleCounts",
    "PromptStats",
    "PromptChainMetrics",
    "RepositoryInfo",
    "PromptChainMetadata",
    "PromptChainDocument",
]
