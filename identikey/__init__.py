"""
identikey: content-addressed encrypted blob storage for Curve25519 keys.

Features:

- Anonymous public-key boxes (X25519 + XSalsa20-Poly1305), byte compatible
  with NaCl/TweetNaCl ``box``, built on PyCryptodomex.
- Versioned wire header carrying the recipient key fingerprint and CBOR
  metadata ahead of the ciphertext.
- Blobs stored under the SHA-256 of their bytes; every read is verified
  against its address, with an optional plaintext checksum on top.
- Fingerprint-indexed Key Manager so readers need not track which key sealed
  which blob.
- Pluggable storage adapters (in-memory, local filesystem).
- CLI tooling: Argon2id-protected key files, personas, ASCII armor.

Decryption failures are deliberately opaque; integrity failures (address or
checksum mismatch) are reported separately since they point at storage.
"""

from .api import EncryptedStorage, content_address, is_content_address
from .fingerprint import compute_fingerprint
from .keys import KeyManager, KeyPair, generate_keypair
from .schema import BlobHeader, BlobMetadata

__version__ = "0.1"

__all__ = [
    "BlobHeader",
    "BlobMetadata",
    "EncryptedStorage",
    "KeyManager",
    "KeyPair",
    "compute_fingerprint",
    "content_address",
    "generate_keypair",
    "is_content_address",
]
