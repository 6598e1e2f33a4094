from __future__ import annotations

"""Content-addressed encrypted blob storage.

Blob layout: ``header || box ciphertext``; the storage key is the lowercase
hex SHA-256 of the whole blob, so every read can verify what the backend
returned.
"""

import hashlib
import logging
import re
import time
from dataclasses import asdict
from typing import Any, Mapping, Optional, Union

from . import box
from .constants import ADDRESS_HEX_LEN
from .errors import ChecksumMismatchError, ContentHashMismatchError, DecryptionError
from .fingerprint import compute_fingerprint
from .header import build_header, parse_header
from .keys import KeyManager
from .schema import BlobMetadata
from .storage.adapter import StorageAdapter


log = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^[0-9a-f]{%d}$" % ADDRESS_HEX_LEN)

MetadataInput = Union[BlobMetadata, Mapping[str, Any], None]


def content_address(blob: bytes) -> str:
    return hashlib.sha256(blob).hexdigest()


def is_content_address(value: object) -> bool:
    return isinstance(value, str) and _ADDRESS_RE.match(value) is not None


def _check_address(address: str) -> str:
    if not is_content_address(address):
        raise ValueError(f"Invalid content address: {address!r}")
    return address


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class EncryptedStorage:
    """Encrypt, address, store and retrieve blobs through a storage adapter.

    Synchronous; each call is independent. Adapter errors propagate unchanged.
    """

    def __init__(self, adapter: StorageAdapter, key_manager: Optional[KeyManager] = None):
        self.adapter = adapter
        self.key_manager = key_manager if key_manager is not None else KeyManager()

    def put(
        self,
        plaintext: bytes,
        public_key: bytes,
        metadata: MetadataInput = None,
        *,
        checksum: bool = False,
    ) -> str:
        """Encrypt ``plaintext`` for ``public_key`` and store it.

        Args:
            plaintext: Bytes to seal.
            public_key: Recipient X25519 public key (32 bytes).
            metadata: ``BlobMetadata`` or a partial mapping with snake_case
                field names. ``algorithm`` and ``timestamp`` default when absent.
            checksum: Record the plaintext SHA-256 in the header.

        Returns:
            The content address (hex SHA-256 of the stored blob).
        """
        plaintext = bytes(plaintext)
        if isinstance(metadata, BlobMetadata):
            fields = asdict(metadata)
        else:
            fields = dict(metadata or {})
        if checksum:
            fields["plaintext_checksum"] = hashlib.sha256(plaintext).hexdigest()
        full = BlobMetadata.with_defaults(fields, _now_ms())

        fingerprint = compute_fingerprint(public_key)
        header = build_header(full, fingerprint)
        blob = header + box.encrypt(plaintext, public_key)
        address = content_address(blob)
        self.adapter.put(address, blob)
        log.debug("stored %s for %s (%d bytes)", address, fingerprint, len(blob))
        return address

    def get_blob(self, address: str) -> bytes:
        """Fetch the raw blob and verify it hashes to ``address``."""
        _check_address(address)
        blob = self.adapter.get(address)
        actual = content_address(blob)
        if actual != address:
            log.warning("content hash mismatch for %s (got %s)", address, actual)
            raise ContentHashMismatchError(address, actual)
        return blob

    def get(self, address: str, private_key: Optional[bytes] = None) -> bytes:
        """Fetch, verify, and decrypt the blob at ``address``.

        ``private_key`` overrides the Key Manager lookup by fingerprint.
        """
        blob = self.get_blob(address)
        parsed = parse_header(blob)
        header = parsed.header
        if private_key is None:
            private_key = self.key_manager.get_private_key(header.key_fingerprint)

        result = box.decrypt(memoryview(blob)[parsed.ciphertext_offset :], private_key)
        if not result.ok:
            log.debug("decryption failed for %s", address)
            raise DecryptionError()
        plaintext = result.unwrap()

        expected = header.metadata.plaintext_checksum
        if expected is not None:
            actual = hashlib.sha256(plaintext).hexdigest()
            if actual != expected:
                log.warning("plaintext checksum mismatch for %s", address)
                raise ChecksumMismatchError(expected, actual)
        return plaintext

    def get_metadata(self, address: str) -> BlobMetadata:
        """Return the header metadata without touching key material."""
        blob = self.get_blob(address)
        return parse_header(blob).header.metadata

    def exists(self, address: str) -> bool:
        return self.adapter.exists(_check_address(address))

    def delete(self, address: str) -> None:
        self.adapter.delete(_check_address(address))
        log.debug("deleted %s", address)


__all__ = ["EncryptedStorage", "content_address", "is_content_address"]
