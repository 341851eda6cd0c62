"""Shared fixtures for GitPromptChain tests."""

from datetime import datetime, timedelta, timezone

import pytest

from gitpromptchain.chain_lifecycle import ChainLifecycle
from gitpromptchain.chain_store import ChainStore


class FakeClock:
    """Clock advancing a fixed step on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lifecycle(clock):
    return ChainLifecycle(clock=clock)


@pytest.fixture
def store(tmp_path):
    store = ChainStore(storage_dir=tmp_path / ".gitpromptchain", repo_path=tmp_path)
    store.initialize()
    return store
