"""
Shared fixtures for agent_trader tests.
"""
import pytest

from agent_trader.tests.helpers import make_agent
from agent_trader.config import EngineConfig
from agent_trader.store.memory import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def agent(store):
    return store.add_agent(make_agent())


@pytest.fixture
def config(tmp_path):
    return EngineConfig(
        max_concurrency=2,
        per_agent_timeout_seconds=2.0,
        performance_seed=7,
        log_dir=str(tmp_path / "logs"),
        journal_enabled=False,
    )
