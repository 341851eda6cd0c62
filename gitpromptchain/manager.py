"""
PromptChainManager - library entry point composing lifecycle and storage.

Usage:
    manager = PromptChainManager(load_config("."))
    manager.initialize()
    manager.start_chain("My feature")
    manager.add_step("How do I implement X?", "Here is how...", file_diffs)
    chain = manager.end_chain(commit_sha, branch)
    manager.save_chain(chain)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .chain_lifecycle import ChainLifecycle, NoActiveChainError
from .chain_store import ChainStore

if TYPE_CHECKING:
    from .config import PromptChainConfig
    from .history import ConversationHistoryProvider
    from .models import FileDiff, PromptChain, PromptChainDocument, PromptStep


class PromptChainManager:
    """
    Facade over ChainLifecycle and ChainStore.

    Each manager owns its own lifecycle, so independent managers never share
    an active chain.
    """

    def __init__(
        self,
        config: "PromptChainConfig",
        lifecycle: ChainLifecycle | None = None,
        store: ChainStore | None = None,
        history_provider: "ConversationHistoryProvider | None" = None,
    ):
        self.config = config
        self.lifecycle = lifecycle or ChainLifecycle()
        self.store = store or ChainStore(config.storage_dir, config.repo_path)
        self.history_provider = history_provider

    def initialize(self) -> None:
        """Create the storage directory. Raises OSError on failure."""
        self.store.initialize()

    def start_chain(self, summary: str | None = None) -> "PromptChain":
        return self.lifecycle.start_chain(summary)

    def add_step(
        self,
        prompt: str,
        response: str,
        file_diffs: list["FileDiff"] | None = None,
    ) -> "PromptStep":
        return self.lifecycle.add_step(prompt, response, file_diffs)

    def end_chain(self, commit_sha: str | None = None, branch: str | None = None) -> "PromptChain | None":
        return self.lifecycle.end_chain(commit_sha, branch)

    def get_current_chain(self) -> "PromptChain | None":
        return self.lifecycle.get_current_chain()

    def save_chain(self, chain: "PromptChain") -> Path:
        return self.store.save(chain)

    def load_chain(self, chain_id: str) -> "PromptChainDocument | None":
        return self.store.load(chain_id)

    def list_chains(self) -> list[str]:
        return self.store.list_all()

    def list_chains_by_commit(self, commit_sha: str) -> list[str]:
        return self.store.list_by_commit(commit_sha)

    def load_chains_by_commit(self, commit_sha: str) -> list["PromptChainDocument"]:
        return self.store.load_by_commit(commit_sha)

    def import_history(self, session_id: str | None = None) -> list["PromptStep"]:
        """
        Append steps from the history provider to the active chain.

        Returns:
            Steps that were added (empty when no provider or no history)

        Raises:
            NoActiveChainError: If no chain is active
        """
        if not self.lifecycle.is_active:
            raise NoActiveChainError("No active prompt chain. Call start_chain() first.")

        provider = self.history_provider
        if provider is None or not provider.supports_conversation_history():
            return []

        history = provider.get_conversation_history(session_id) or []
        return [
            self.lifecycle.add_step(step.prompt, step.response, step.file_diffs)
            for step in history
        ]


__all__ = ["PromptChainManager"]
