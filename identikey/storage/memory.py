from __future__ import annotations

import logging
from typing import Dict

from ..errors import BlobNotFoundError
from .adapter import StorageAdapter


log = logging.getLogger(__name__)


class MemoryAdapter(StorageAdapter):
    """Dict-backed adapter for tests and ephemeral use."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def put(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)
        log.debug("put %s (%d bytes)", key, len(data))

    def get(self, key: str) -> bytes:
        try:
            return bytes(self._blobs[key])
        except KeyError:
            raise BlobNotFoundError(key) from None

    def exists(self, key: str) -> bool:
        return key in self._blobs

    def delete(self, key: str) -> None:
        if self._blobs.pop(key, None) is not None:
            log.debug("deleted %s", key)

    def clear(self) -> None:
        self._blobs.clear()

    def __len__(self) -> int:
        return len(self._blobs)
