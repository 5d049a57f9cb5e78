"""
Shared pytest fixtures for lore tests.

Stores live under tmp_path; environment variables that change store
discovery or the recording agent are cleared for every test.
"""

from datetime import datetime, timedelta, timezone

import pytest

from lore.store import LoreStore
from lore.types import Record, RejectedAlternative

BASE_TIME = datetime(2025, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the user's environment."""
    monkeypatch.delenv("LORE_STORE_PATH", raising=False)
    monkeypatch.delenv("LORE_AGENT", raising=False)
    monkeypatch.delenv("LORE_VERBOSE", raising=False)
    monkeypatch.setenv("LORE_ERROR_LOG", str(tmp_path / "errors.log"))


@pytest.fixture
def store(tmp_path):
    """An initialized store rooted at a fresh project directory."""
    root = tmp_path / "project"
    root.mkdir()
    s = LoreStore(root)
    s.init(agent_id="test-agent")
    return s


def make_record(
    target_file: str = "src/main.py",
    *,
    id: str = "00000000-0000-0000-0000-000000000001",
    agent_id: str = "test-agent",
    minutes: int = 0,
    intent: str = "Initial implementation",
    reasoning_trace: str = "Chose a flat-file layout for easy diffs",
    rejected=(),
    tags=(),
    line_range=None,
    commit_hash=None,
) -> Record:
    """Build a record with a deterministic id and timestamp."""
    return Record(
        id=id,
        target_file=target_file,
        file_hash="abc123",
        agent_id=agent_id,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        intent=intent,
        reasoning_trace=reasoning_trace,
        line_range=line_range,
        commit_hash=commit_hash,
        rejected_alternatives=[
            r if isinstance(r, RejectedAlternative) else RejectedAlternative(r)
            for r in rejected
        ],
        tags=list(tags),
    )


@pytest.fixture
def record_factory():
    return make_record
