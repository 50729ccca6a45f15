"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists through an abstract key-value store.
The transaction store only ever needs three operations: read a key,
write a key, delete a key. Implementations:
1. In-memory storage for tests and embedding
2. JSON files on disk for local use

The interface is intentionally simple - we're not building a database.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ledger.models.transaction import ValidationIssue


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for the persistence boundary.

    Values are opaque text; the transaction store decides the encoding.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored text, or None if the key was never written
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write the value for a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove a key. Deleting a missing key is not an error.

        Raises:
            StorageError: If the removal fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ValidationError(StorageError):
    """
    A record was rejected on add or replace.

    Carries the individual issues so callers can re-prompt field by field.
    """

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


class DuplicateError(ValidationError):
    """Attempted to insert a record whose id already exists."""
    pass
