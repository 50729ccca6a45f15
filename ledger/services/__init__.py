"""Services package."""

from ledger.services.storage import (
    DuplicateError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    "DuplicateError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]
