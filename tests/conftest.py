"""
Shared fixtures.

Settings are cached process-wide, so every test gets a fresh cache and a
data directory of its own. Stores use the in-memory key-value backend
unless a test needs real files.
"""

import os
from decimal import Decimal
from pathlib import Path

import pytest

from ledger.config import get_settings
from ledger.models.transaction import Transaction
from ledger.services.storage import InMemoryKeyValueStore
from ledger.services.storage.transaction_store import TransactionStore


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point file storage at the test's temporary directory."""
    monkeypatch.setenv("LEDGER_STORAGE_DATA_DIR", os.fspath(tmp_path / "data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv_store: InMemoryKeyValueStore) -> TransactionStore:
    return TransactionStore(kv_store, "alice")


@pytest.fixture
def make_transaction():
    """Factory for valid transactions; override any field by keyword."""
    def _make(**overrides) -> Transaction:
        fields = {
            "date": "2024-01-15",
            "title": "Groceries",
            "amount": Decimal("50.00"),
            "category": "Food",
            "type": "expense",
        }
        fields.update(overrides)
        return Transaction(**fields)
    return _make
