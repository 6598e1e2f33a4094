from __future__ import annotations

"""Passphrase-protected key files.

The private key is sealed with XSalsa20-Poly1305 (NaCl secretbox) under a
key derived from the passphrase with Argon2id. Unencrypted files keep the
same JSON shape with empty ``salt`` and ``nonce``.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Union

from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash
from Cryptodome.Random import get_random_bytes

from .constants import (
    ARGON_MEMORY_COST_KIB,
    ARGON_PARALLELISM,
    ARGON_TIME_COST,
    KEY_FILE_SALT_SIZE,
    KEY_FILE_VERSION,
    NONCE_SIZE,
    PUBLIC_KEY_SIZE,
    SECRET_KEY_SIZE,
    SECRETBOX_KEY_SIZE,
)
from .errors import KeyFileError
from .fingerprint import compute_fingerprint
from .keys import from_base58, from_base64, to_base58, to_base64
from .pathutil import atomic_write_bytes
from .salsa import XSalsa20Poly1305


@dataclass
class KeyFile:
    version: int
    publicKey: str
    privateKey: str
    salt: str
    nonce: str
    fingerprint: str

    @property
    def is_encrypted(self) -> bool:
        return bool(self.salt and self.nonce)

    @property
    def public_key(self) -> bytes:
        return decode_public_key(self.publicKey)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_dict(cls, obj: object) -> "KeyFile":
        if not isinstance(obj, dict):
            raise KeyFileError("Key file must be a JSON object")
        try:
            kf = cls(
                version=obj["version"],
                publicKey=obj["publicKey"],
                privateKey=obj["privateKey"],
                salt=obj.get("salt", ""),
                nonce=obj.get("nonce", ""),
                fingerprint=obj.get("fingerprint", ""),
            )
        except KeyError as exc:
            raise KeyFileError(f"Key file missing field: {exc.args[0]}") from None
        for name in ("publicKey", "privateKey", "salt", "nonce", "fingerprint"):
            if not isinstance(getattr(kf, name), str):
                raise KeyFileError(f"Key file field {name} must be a string")
        return kf


def derive_key(passphrase: str, salt: bytes) -> bytes:
    return _argon_hash(
        passphrase.encode("utf-8"),
        salt,
        time_cost=ARGON_TIME_COST,
        memory_cost=ARGON_MEMORY_COST_KIB,
        parallelism=ARGON_PARALLELISM,
        hash_len=SECRETBOX_KEY_SIZE,
        type=_ArgonType.ID,
    )


def encrypt_private_key(secret_key: bytes, public_key: bytes, passphrase: str) -> KeyFile:
    if len(secret_key) != SECRET_KEY_SIZE or len(public_key) != PUBLIC_KEY_SIZE:
        raise KeyFileError("Key pair has the wrong size")
    if not passphrase:
        raise KeyFileError("Passphrase cannot be empty")
    salt = get_random_bytes(KEY_FILE_SALT_SIZE)
    nonce = get_random_bytes(NONCE_SIZE)
    sealed = XSalsa20Poly1305(derive_key(passphrase, salt)).encrypt(nonce, bytes(secret_key))
    return KeyFile(
        version=KEY_FILE_VERSION,
        publicKey=to_base58(public_key),
        privateKey=to_base64(sealed),
        salt=to_base64(salt),
        nonce=to_base64(nonce),
        fingerprint=compute_fingerprint(public_key),
    )


def plain_key_file(secret_key: bytes, public_key: bytes) -> KeyFile:
    """Unencrypted key file. Anyone who can read it holds the key."""
    if len(secret_key) != SECRET_KEY_SIZE or len(public_key) != PUBLIC_KEY_SIZE:
        raise KeyFileError("Key pair has the wrong size")
    return KeyFile(
        version=KEY_FILE_VERSION,
        publicKey=to_base58(public_key),
        privateKey=to_base64(secret_key),
        salt="",
        nonce="",
        fingerprint=compute_fingerprint(public_key),
    )


def decrypt_private_key(key_file: KeyFile, passphrase: str = "") -> bytes:
    if key_file.version != KEY_FILE_VERSION:
        raise KeyFileError(f"Unsupported key file version: {key_file.version}")
    try:
        if not key_file.is_encrypted:
            secret = from_base64(key_file.privateKey)
        else:
            salt = from_base64(key_file.salt)
            nonce = from_base64(key_file.nonce)
            if len(salt) != KEY_FILE_SALT_SIZE:
                raise KeyFileError(f"Invalid salt length: expected {KEY_FILE_SALT_SIZE}, got {len(salt)}")
            if len(nonce) != NONCE_SIZE:
                raise KeyFileError(f"Invalid nonce length: expected {NONCE_SIZE}, got {len(nonce)}")
            sealed = from_base64(key_file.privateKey)
            try:
                secret = XSalsa20Poly1305(derive_key(passphrase, salt)).decrypt(nonce, sealed)
            except ValueError:
                raise KeyFileError("Decryption failed. Wrong passphrase or corrupted key file.") from None
    except ValueError as exc:
        raise KeyFileError(f"Malformed key file: {exc}") from exc
    if len(secret) != SECRET_KEY_SIZE:
        raise KeyFileError(f"Invalid private key length: {len(secret)}")
    return secret


def decode_public_key(text: str) -> bytes:
    """Decode a Base58 public key, falling back to base64."""
    text = text.strip()
    try:
        raw = from_base58(text)
        if len(raw) == PUBLIC_KEY_SIZE:
            return raw
    except ValueError:
        pass
    try:
        raw = from_base64(text)
    except ValueError:
        raise KeyFileError("Public key is neither Base58 nor base64") from None
    if len(raw) != PUBLIC_KEY_SIZE:
        raise KeyFileError(f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(raw)}")
    return raw


def load_key_file(path: Union[str, Path]) -> KeyFile:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise KeyFileError(f"Cannot read key file {path}: {exc}") from exc
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise KeyFileError(f"Key file {path} is not valid JSON: {exc}") from exc
    return KeyFile.from_dict(obj)


def save_key_file(path: Union[str, Path], key_file: KeyFile) -> None:
    atomic_write_bytes(path, key_file.to_json().encode("utf-8"), mode=0o600)


__all__ = [
    "KeyFile",
    "decode_public_key",
    "decrypt_private_key",
    "derive_key",
    "encrypt_private_key",
    "load_key_file",
    "plain_key_file",
    "save_key_file",
]
