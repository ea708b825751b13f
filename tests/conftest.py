"""Pytest configuration and shared fixtures."""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from bookit.core.booking import Bookkeeper
from bookit.core.storage import LedgerStore


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")


@pytest.fixture  # type: ignore[misc]
def temp_dir() -> Iterator[Path]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture  # type: ignore[misc]
def store(temp_dir: Path) -> LedgerStore:
    """Create an empty ledger store in a temporary directory."""
    return LedgerStore(temp_dir / "data")


@pytest.fixture  # type: ignore[misc]
def bookkeeper(store: LedgerStore) -> Bookkeeper:
    """Create a bookkeeper on the temporary store."""
    return Bookkeeper(store)
