from __future__ import annotations

"""XSalsa20-Poly1305 (NaCl ``crypto_secretbox``) backed by PyCryptodomex.

PyCryptodomex ships Salsa20 with 8-byte nonces and a raw Poly1305 MAC but no
extended-nonce variant. This module derives the XSalsa20 subkey via HSalsa20,
runs the remaining stream through ``Cryptodome.Cipher.Salsa20`` and
authenticates with ``Poly1305_MAC`` keyed from the first 32 keystream bytes,
exactly as NaCl/TweetNaCl do. Output is ``tag(16) || ciphertext``.
"""

import hmac
from typing import Tuple

from Cryptodome.Cipher import Salsa20
from Cryptodome.Hash.Poly1305 import Poly1305_MAC

from .constants import NONCE_SIZE, SECRETBOX_KEY_SIZE, TAG_SIZE


# "expand 32-byte k"
_SIGMA = (
    0x61707865,
    0x3320646E,
    0x79622D32,
    0x6B206574,
)


def _rotl32(v: int, n: int) -> int:
    return ((v << n) & 0xFFFFFFFF) | (v >> (32 - n))


def _quarter_round(state: list[int], a: int, b: int, c: int, d: int) -> None:
    state[b] ^= _rotl32((state[a] + state[d]) & 0xFFFFFFFF, 7)
    state[c] ^= _rotl32((state[b] + state[a]) & 0xFFFFFFFF, 9)
    state[d] ^= _rotl32((state[c] + state[b]) & 0xFFFFFFFF, 13)
    state[a] ^= _rotl32((state[d] + state[c]) & 0xFFFFFFFF, 18)


def hsalsa20(key: bytes, nonce: bytes) -> bytes:
    """HSalsa20 core: 32-byte key and 16-byte input to a 32-byte subkey."""
    if len(key) != SECRETBOX_KEY_SIZE:
        raise ValueError("HSalsa20 expects 32-byte key")
    if len(nonce) != 16:
        raise ValueError("HSalsa20 expects 16-byte nonce")

    k = [int.from_bytes(key[i : i + 4], "little") for i in range(0, 32, 4)]
    n = [int.from_bytes(nonce[i : i + 4], "little") for i in range(0, 16, 4)]
    state = [
        _SIGMA[0], k[0], k[1], k[2],
        k[3], _SIGMA[1], n[0], n[1],
        n[2], n[3], _SIGMA[2], k[4],
        k[5], k[6], k[7], _SIGMA[3],
    ]

    for _ in range(10):  # 20 rounds (10 double rounds)
        # columns
        _quarter_round(state, 0, 4, 8, 12)
        _quarter_round(state, 5, 9, 13, 1)
        _quarter_round(state, 10, 14, 2, 6)
        _quarter_round(state, 15, 3, 7, 11)
        # rows
        _quarter_round(state, 0, 1, 2, 3)
        _quarter_round(state, 5, 6, 7, 4)
        _quarter_round(state, 10, 11, 8, 9)
        _quarter_round(state, 15, 12, 13, 14)

    output_words = [
        state[0],
        state[5],
        state[10],
        state[15],
        state[6],
        state[7],
        state[8],
        state[9],
    ]
    return b"".join(word.to_bytes(4, "little") for word in output_words)


class XSalsa20Poly1305:
    """Minimal NaCl secretbox helper backed by PyCryptodomex."""

    def __init__(self, key: bytes):
        if len(key) != SECRETBOX_KEY_SIZE:
            raise ValueError("Key must be 32 bytes for XSalsa20-Poly1305")
        self._key = bytes(key)

    def _stream(self, nonce: bytes) -> Tuple[object, bytes]:
        if len(nonce) != NONCE_SIZE:
            raise ValueError("Nonce must be 24 bytes for XSalsa20-Poly1305")
        subkey = hsalsa20(self._key, bytes(nonce[:16]))
        cipher = Salsa20.new(key=subkey, nonce=bytes(nonce[16:]))
        # First 32 keystream bytes key the one-time authenticator.
        mac_key = cipher.encrypt(b"\x00" * 32)
        return cipher, mac_key

    def encrypt(self, nonce: bytes, plaintext: bytes) -> bytes:
        """Encrypt and authenticate ``plaintext``; returns ``tag || ciphertext``."""
        cipher, mac_key = self._stream(nonce)
        ciphertext = cipher.encrypt(plaintext)
        tag = Poly1305_MAC(mac_key[:16], mac_key[16:], ciphertext).digest()
        return tag + ciphertext

    def decrypt(self, nonce: bytes, sealed: bytes) -> bytes:
        """Verify and decrypt ``tag || ciphertext``.

        Raises:
            ValueError: if the input is shorter than a tag or the MAC check fails.
        """
        if len(sealed) < TAG_SIZE:
            raise ValueError("Sealed payload too short")
        cipher, mac_key = self._stream(nonce)
        tag = bytes(sealed[:TAG_SIZE])
        ciphertext = bytes(sealed[TAG_SIZE:])
        expected = Poly1305_MAC(mac_key[:16], mac_key[16:], ciphertext).digest()
        if not hmac.compare_digest(tag, expected):
            raise ValueError("MAC check failed")
        return cipher.decrypt(ciphertext)


__all__ = [
    "XSalsa20Poly1305",
    "hsalsa20",
]
