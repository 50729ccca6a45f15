"""
Storage Services Package

Provides the abstract key-value interface, its concrete backends and the
storage exceptions. The TransactionStore built on top of them lives in
ledger.services.storage.transaction_store.
"""

from ledger.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ledger.services.storage.key_value import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
