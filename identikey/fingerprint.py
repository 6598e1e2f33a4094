from __future__ import annotations

import hashlib
import re

import base58

from .constants import FINGERPRINT_PATTERN


_FINGERPRINT_RE = re.compile(FINGERPRINT_PATTERN)


def compute_fingerprint(public_key: bytes) -> str:
    """Return the Base58 (Bitcoin alphabet) SHA-256 fingerprint of ``public_key``.

    Any byte string is accepted; the result only depends on the input bytes.
    """
    digest = hashlib.sha256(bytes(public_key)).digest()
    return base58.b58encode(digest).decode("ascii")


def is_valid_fingerprint(value: object) -> bool:
    return isinstance(value, str) and _FINGERPRINT_RE.match(value) is not None
