"""
Conversation history providers.

MCP servers do not currently expose conversation history through the
protocol. This module defines the interface a provider would implement and a
default provider that reports no support, so chains are logged manually.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .config import HistoryConfig
    from .models import PromptStep

logger = logging.getLogger(__name__)


class ConversationHistoryProvider(Protocol):
    """Source of prompt/response history for the active chain."""

    def supports_conversation_history(self) -> bool:
        """Whether this provider can return history at all."""
        ...

    def get_conversation_history(self, session_id: str | None = None) -> list["PromptStep"] | None:
        """
        Retrieve conversation history.

        Returns:
            Steps in conversation order, or None when unavailable
        """
        ...


class DefaultHistoryProvider:
    """Provider for servers without history support. Always returns None."""

    def __init__(self, config: "HistoryConfig"):
        self.config = config

    def supports_conversation_history(self) -> bool:
        return False

    def get_conversation_history(self, session_id: str | None = None) -> list["PromptStep"] | None:
        if not self.config.enabled or not self.config.server_url:
            return None

        logger.warning(
            f"Conversation history retrieval is not supported by {self.config.server_url}; "
            "log prompts manually with 'add'"
        )
        return None


def create_history_provider(config: "HistoryConfig") -> ConversationHistoryProvider:
    """Create the provider for a history configuration."""
    return DefaultHistoryProvider(config)


__all__ = ["ConversationHistoryProvider", "DefaultHistoryProvider", "create_history_provider"]
