"""Pluggable byte stores consumed by :class:`identikey.api.EncryptedStorage`."""

from .adapter import StorageAdapter
from .filesystem import FilesystemAdapter
from .memory import MemoryAdapter

__all__ = ["FilesystemAdapter", "MemoryAdapter", "StorageAdapter"]
