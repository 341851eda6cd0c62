"""
Configuration management for GitPromptChain.

Priority order (highest first):
1. Environment variables (GITPROMPTCHAIN_LLM_PROVIDER, GITPROMPTCHAIN_LLM_MODEL)
2. <storage_dir>/config.json
3. Defaults

A .env file in the repository root is loaded before environment variables
are read. Environment only affects optional tip generation.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIRNAME = ".gitpromptchain"
CONFIG_FILENAME = "config.json"

# Default model per tips provider
DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-haiku-4-5-20251001",
}

# Credential environment variable per tips provider
API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY", "ANTHROPIC_AUTH_TOKEN"),
}


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


@dataclass
class TipsConfig:
    """Configuration for optional LLM prompting tips."""

    enabled: bool = True
    provider: Literal["openai", "anthropic"] = "openai"
    model: str | None = None  # None = provider default
    max_output_tokens: int = 400
    timeout_seconds: float = 30.0

    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider, DEFAULT_MODELS["openai"])

    def api_key(self) -> str | None:
        """Credential for the configured provider, if present in the environment."""
        for var in API_KEY_ENV_VARS.get(self.provider, ()):
            value = os.environ.get(var)
            if value:
                return value
        return None


@dataclass
class HistoryConfig:
    """Configuration for the conversation history provider."""

    enabled: bool = False
    server_url: str | None = None
    auth_token: str | None = None


@dataclass
class PromptChainConfig:
    """Top-level configuration."""

    repo_path: Path = field(default_factory=Path.cwd)
    storage_dir: Path | None = None
    tips: TipsConfig = field(default_factory=TipsConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)

    def __post_init__(self):
        self.repo_path = Path(self.repo_path)
        if self.storage_dir is None:
            self.storage_dir = self.repo_path / DEFAULT_STORAGE_DIRNAME
        else:
            self.storage_dir = Path(self.storage_dir)

    @property
    def config_path(self) -> Path:
        return self.storage_dir / CONFIG_FILENAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "tips": {
                "enabled": self.tips.enabled,
                "provider": self.tips.provider,
                "model": self.tips.model,
                "max_output_tokens": self.tips.max_output_tokens,
                "timeout_seconds": self.tips.timeout_seconds,
            },
            "history": {
                "enabled": self.history.enabled,
                "server_url": self.history.server_url,
            },
        }

    def save(self) -> Path:
        """Write the tips/history settings to <storage_dir>/config.json."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return self.config_path


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def load_config(
    repo_path: Path | str | None = None,
    storage_dir: Path | str | None = None,
) -> PromptChainConfig:
    """
    Load configuration for a repository.

    Args:
        repo_path: Repository root (default: current directory)
        storage_dir: Storage directory (default: <repo>/.gitpromptchain)

    Returns:
        PromptChainConfig with file and environment overrides applied
    """
    config = PromptChainConfig(
        repo_path=Path(repo_path) if repo_path else Path.cwd(),
        storage_dir=Path(storage_dir) if storage_dir else None,
    )

    env_file = config.repo_path / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    data = _read_config_file(config.config_path)
    if isinstance(data.get("tips"), dict):
        config.tips = TipsConfig(**_filter_dataclass_fields(data["tips"], TipsConfig))
    if isinstance(data.get("history"), dict):
        config.history = HistoryConfig(**_filter_dataclass_fields(data["history"], HistoryConfig))

    provider = os.getenv("GITPROMPTCHAIN_LLM_PROVIDER")
    if provider:
        provider = provider.lower()
        if provider in DEFAULT_MODELS:
            config.tips.provider = provider
        else:
            logger.warning(f"Unknown tips provider {provider!r}, keeping {config.tips.provider!r}")

    model = os.getenv("GITPROMPTCHAIN_LLM_MODEL")
    if model:
        config.tips.model = model

    return config


__all__ = [
    "PromptChainConfig",
    "TipsConfig",
    "HistoryConfig",
    "load_config",
    "DEFAULT_STORAGE_DIRNAME",
    "DEFAULT_MODELS",
]
