"""ChainLifecycle - manage the currently active prompt chain."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .models import PromptChain, PromptStep

if TYPE_CHECKING:
    from .models import FileDiff

logger = logging.getLogger(__name__)


class PromptChainError(Exception):
    """Base error for prompt chain operations."""
    pass


class NoActiveChainError(PromptChainError):
    """Operation requires an active chain but none was started."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ChainLifecycle:
    """
    Two-state machine for the chain being built.

    - Idle → Active: start_chain()
    - Active → Active: add_step(), start_chain() (replaces the active chain)
    - Active → Idle: end_chain()

    Saving is not part of the lifecycle; ended chains are handed to
    ChainStore.save() by the caller.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        """
        Initialize an idle lifecycle.

        Args:
            clock: Returns the current time (default: timezone-aware UTC now)
            id_factory: Returns fresh chain/step IDs (default: uuid4 strings)
        """
        self._clock = clock or _utcnow
        self._new_id = id_factory or _new_id
        self._current: PromptChain | None = None

    @property
    def current_chain(self) -> PromptChain | None:
        """The active chain, or None when idle."""
        return self._current

    @property
    def is_active(self) -> bool:
        return self._current is not None

    def get_current_chain(self) -> PromptChain | None:
        return self._current

    def start_chain(self, summary: str | None = None) -> PromptChain:
        """
        Start a new chain and make it active.

        An already active chain is discarded without being saved.

        Args:
            summary: Optional goal/summary of the chain

        Returns:
            The new active chain
        """
        if self._current is not None:
            logger.warning(
                f"Discarding unsaved chain {self._current.chain_id} "
                f"({len(self._current.steps)} steps)"
            )

        self._current = PromptChain(
            chain_id=self._new_id(),
            start_time=self._clock(),
            summary=summary or None,
        )
        return self._current

    def add_step(
        self,
        prompt: str,
        response: str,
        file_diffs: list["FileDiff"] | None = None,
    ) -> PromptStep:
        """
        Append a prompt/response step to the active chain.

        Raises:
            NoActiveChainError: If no chain is active
        """
        if self._current is None:
            raise NoActiveChainError("No active prompt chain. Call start_chain() first.")

        step = PromptStep(
            id=self._new_id(),
            timestamp=self._clock(),
            prompt=prompt,
            response=response,
            file_diffs=list(file_diffs or []),
        )
        self._current.steps.append(step)
        return step

    def end_chain(
        self,
        commit_sha: str | None = None,
        branch: str | None = None,
    ) -> PromptChain | None:
        """
        Seal the active chain and return to idle.

        Returns:
            The ended chain, or None if no chain was active
        """
        chain = self._current
        if chain is None:
            return None

        chain.end_time = max(self._clock(), chain.start_time)
        chain.commit_sha = commit_sha or None
        chain.branch = branch or None
        self._current = None
        return chain


__all__ = ["ChainLifecycle", "PromptChainError", "NoActiveChainError"]
