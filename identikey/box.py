from __future__ import annotations

"""Anonymous Curve25519 public-key box (NaCl ``crypto_box`` compatible).

Each encryption generates a fresh ephemeral key pair and a random 24-byte
nonce. The blob layout is ``ephemeral_pk(32) || nonce(24) || tag(16) || ct``
and decrypts with TweetNaCl ``box.open`` given the same inputs.
"""

from dataclasses import dataclass
from typing import Optional

from Cryptodome.Protocol import DH
from Cryptodome.Random import get_random_bytes

from .constants import (
    ENVELOPE_SIZE,
    MIN_BOX_SIZE,
    NONCE_SIZE,
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
)
from .errors import DecryptionError
from .salsa import XSalsa20Poly1305, hsalsa20


_ZERO16 = b"\x00" * 16


def _check_secret_key(secret_key: bytes) -> bytes:
    if len(secret_key) != SECRET_KEY_SIZE:
        raise ValueError(f"Secret key must be {SECRET_KEY_SIZE} bytes")
    return bytes(secret_key)


def _check_public_key(public_key: bytes) -> bytes:
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise ValueError(f"Public key must be {PUBLIC_KEY_SIZE} bytes")
    return bytes(public_key)


def x25519(secret_key: bytes, public_key: bytes) -> bytes:
    """Raw X25519 scalar multiplication (RFC 7748).

    Raises ValueError for malformed keys or a low-order peer point.
    """
    priv = DH.import_x25519_private_key(_check_secret_key(secret_key))
    pub = DH.import_x25519_public_key(_check_public_key(public_key))
    return DH.key_agreement(static_priv=priv, static_pub=pub, kdf=lambda z: bytes(z))


def public_key_from_secret(secret_key: bytes) -> bytes:
    priv = DH.import_x25519_private_key(_check_secret_key(secret_key))
    return priv.public_key().export_key(format="raw")


def box_beforenm(public_key: bytes, secret_key: bytes) -> bytes:
    """Precompute the shared secretbox key (``crypto_box_beforenm``)."""
    return hsalsa20(x25519(secret_key, public_key), _ZERO16)


def _ephemeral_keypair() -> tuple[bytes, bytes]:
    # The public key import masks bit 255, so a key with that bit set would
    # alias another blob. Resample until it is clear.
    while True:
        secret = get_random_bytes(SECRET_KEY_SIZE)
        public = public_key_from_secret(secret)
        if not public[31] & 0x80:
            return secret, public


@dataclass(frozen=True)
class OpenResult:
    """Outcome of :func:`decrypt`.

    ``ok`` is False for every authentication or framing failure; no further
    detail is exposed.
    """

    ok: bool
    plaintext: Optional[bytes] = None

    def unwrap(self) -> bytes:
        if not self.ok or self.plaintext is None:
            raise DecryptionError()
        return self.plaintext


_FAILED = OpenResult(ok=False)


def encrypt(plaintext: bytes, recipient_public_key: bytes) -> bytes:
    """Seal ``plaintext`` to ``recipient_public_key`` with a fresh ephemeral key."""
    recipient = _check_public_key(recipient_public_key)
    eph_secret, eph_public = _ephemeral_keypair()
    nonce = get_random_bytes(NONCE_SIZE)
    shared = box_beforenm(recipient, eph_secret)
    sealed = XSalsa20Poly1305(shared).encrypt(nonce, bytes(plaintext))
    return eph_public + nonce + sealed


def decrypt(blob: bytes, secret_key: bytes) -> OpenResult:
    """Open a box produced by :func:`encrypt`.

    Never raises for bad input data; callers inspect ``ok`` or call
    ``unwrap()`` to get a :class:`DecryptionError`.
    """
    secret = _check_secret_key(secret_key)
    if len(blob) < MIN_BOX_SIZE:
        return _FAILED
    eph_public = bytes(blob[:PUBLIC_KEY_SIZE])
    if eph_public[31] & 0x80:
        return _FAILED
    nonce = bytes(blob[PUBLIC_KEY_SIZE:ENVELOPE_SIZE])
    sealed = bytes(blob[ENVELOPE_SIZE:])
    try:
        shared = box_beforenm(eph_public, secret)
        plaintext = XSalsa20Poly1305(shared).decrypt(nonce, sealed)
    except ValueError:
        return _FAILED
    return OpenResult(ok=True, plaintext=plaintext)


__all__ = [
    "OpenResult",
    "box_beforenm",
    "decrypt",
    "encrypt",
    "public_key_from_secret",
    "x25519",
]
