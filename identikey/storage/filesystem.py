from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Union

from ..errors import BlobNotFoundError, StorageError
from ..pathutil import atomic_write_bytes, norm_key
from .adapter import StorageAdapter


log = logging.getLogger(__name__)


class FilesystemAdapter(StorageAdapter):
    """One file per key under ``root_dir``.

    Writes are atomic (temp file in the target directory, fsync, rename).
    Files are created ``0o600`` and directories ``0o700``.
    """

    def __init__(self, root_dir: Union[str, Path]):
        self.root_dir = Path(root_dir)

    def ensure_root(self) -> None:
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
        except OSError as exc:
            raise StorageError(f"Cannot create storage root {self.root_dir}: {exc}") from exc

    def _path_for(self, key: str) -> Path:
        rel = norm_key(key)
        root = self.root_dir.resolve()
        path = (root / rel).resolve()
        if path != root and root not in path.parents:
            raise ValueError(f"Storage key escapes root: {key}")
        return path

    def put(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        self.ensure_root()
        try:
            atomic_write_bytes(path, bytes(data), mode=0o600, dir_mode=0o700)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        log.debug("put %s (%d bytes)", key, len(data))

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except FileNotFoundError:
            raise BlobNotFoundError(key) from None
        except OSError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            os.unlink(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc
        log.debug("deleted %s", key)

    def clear(self) -> None:
        """Remove every stored blob (the root directory itself is kept)."""
        if not self.root_dir.exists():
            return
        for child in self.root_dir.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as exc:
                raise StorageError(f"Failed to clear {child}: {exc}") from exc
