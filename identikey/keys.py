from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Dict, Iterator

import base58
from Cryptodome.Random import get_random_bytes

from .box import public_key_from_secret
from .constants import PUBLIC_KEY_SIZE, SECRET_KEY_SIZE
from .errors import KeyNotFoundError
from .fingerprint import compute_fingerprint


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes
    secret_key: bytes

    def __post_init__(self) -> None:
        if len(self.public_key) != PUBLIC_KEY_SIZE:
            raise ValueError(f"Public key must be {PUBLIC_KEY_SIZE} bytes")
        if len(self.secret_key) != SECRET_KEY_SIZE:
            raise ValueError(f"Secret key must be {SECRET_KEY_SIZE} bytes")

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.public_key)

    def __repr__(self) -> str:
        return f"KeyPair(fingerprint={self.fingerprint!r})"


def generate_keypair() -> KeyPair:
    secret = get_random_bytes(SECRET_KEY_SIZE)
    return KeyPair(public_key=public_key_from_secret(secret), secret_key=secret)


def keypair_from_secret(secret_key: bytes) -> KeyPair:
    secret = bytes(secret_key)
    return KeyPair(public_key=public_key_from_secret(secret), secret_key=secret)


# Text encodings
def to_hex(data: bytes) -> str:
    return bytes(data).hex()


def from_hex(text: str) -> bytes:
    return bytes.fromhex(text.strip())


def to_base64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def from_base64(text: str) -> bytes:
    try:
        return base64.b64decode(text.strip(), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64: {exc}") from exc


def to_base58(data: bytes) -> str:
    return base58.b58encode(bytes(data)).decode("ascii")


def from_base58(text: str) -> bytes:
    return base58.b58decode(text.strip())


class KeyManager:
    """In-memory map from public-key fingerprint to private key.

    Re-adding a fingerprint replaces the stored private key. Not shared
    across instances.
    """

    def __init__(self) -> None:
        self._keys: Dict[str, bytes] = {}

    def add_key(self, public_key: bytes, private_key: bytes) -> str:
        if len(public_key) != PUBLIC_KEY_SIZE:
            raise ValueError(f"Public key must be {PUBLIC_KEY_SIZE} bytes")
        if len(private_key) != SECRET_KEY_SIZE:
            raise ValueError(f"Secret key must be {SECRET_KEY_SIZE} bytes")
        fingerprint = compute_fingerprint(public_key)
        self._keys[fingerprint] = bytes(private_key)
        log.debug("registered key %s", fingerprint)
        return fingerprint

    def add_keypair(self, keypair: KeyPair) -> str:
        return self.add_key(keypair.public_key, keypair.secret_key)

    def get_private_key(self, fingerprint: str) -> bytes:
        try:
            return self._keys[fingerprint]
        except KeyError:
            raise KeyNotFoundError(fingerprint) from None

    def has_key(self, fingerprint: str) -> bool:
        return fingerprint in self._keys

    def fingerprints(self) -> Iterator[str]:
        return iter(list(self._keys))

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._keys

    def __len__(self) -> int:
        return len(self._keys)


__all__ = [
    "KeyManager",
    "KeyPair",
    "from_base58",
    "from_base64",
    "from_hex",
    "generate_keypair",
    "keypair_from_secret",
    "to_base58",
    "to_base64",
    "to_hex",
]
