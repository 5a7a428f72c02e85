"""
Shared pytest fixtures and configuration for innolock tests.

This module provides:
- Auto-marking of unit vs integration tests by location
- A fake two-session server for protocol and sequencer tests
- Sample status dumps
"""

import sys
from pathlib import Path

import pytest

# Ensure innolock and tests._support are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests._support.fakes import FakeServer, FakeSession
from tests._support.status_dumps import (
    HOLDER_BLOCK,
    IDLE_BLOCK,
    WAITING_BLOCK,
    build_status,
)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Sessions
# =============================================================================


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def sessions(server):
    """(session1, session2) sharing one fake server."""
    return FakeSession("session1", server), FakeSession("session2", server)


# =============================================================================
# Status dumps
# =============================================================================


@pytest.fixture
def contended_status() -> str:
    """Status with an idle trx, a waiting trx and the lock holder."""
    return build_status(IDLE_BLOCK, WAITING_BLOCK, HOLDER_BLOCK)


@pytest.fixture
def status_file(tmp_path, contended_status) -> Path:
    path = tmp_path / "status.txt"
    path.write_text(contended_status, encoding="utf-8")
    return path
