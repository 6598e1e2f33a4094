from __future__ import annotations

from abc import ABC, abstractmethod


class StorageAdapter(ABC):
    """Byte store keyed by content address.

    Implementations must return exactly the bytes that were stored.
    """

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the stored bytes; raise ``BlobNotFoundError`` if absent."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""
