from __future__ import annotations

from typing import Any, Optional


class IdentikeyError(Exception):
    """Base class for identikey-specific errors."""


# Format errors: malformed or unsupported headers
class HeaderFormatError(IdentikeyError):
    """A blob header failed to parse or validate.

    ``field``, ``expected`` and ``actual`` describe the first check that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        expected: Any = None,
        actual: Any = None,
    ):
        self.field = field
        self.expected = expected
        self.actual = actual
        detail = []
        if field is not None:
            detail.append(f"field={field}")
        if expected is not None:
            detail.append(f"expected={expected}")
        if actual is not None:
            detail.append(f"actual={actual}")
        super().__init__(f"{message} ({', '.join(detail)})" if detail else message)
        self.message = message


class UnsupportedVersionError(HeaderFormatError):
    pass


class MetadataTooLargeError(HeaderFormatError):
    pass


class SchemaError(HeaderFormatError):
    pass


# Authentication errors
class DecryptionError(IdentikeyError):
    """Authenticated decryption failed. Deliberately carries no detail."""

    def __init__(self, message: str = "Decryption failed"):
        super().__init__(message)


# Integrity errors: storage-layer corruption
class IntegrityError(IdentikeyError):
    def __init__(self, message: str, *, expected: str, actual: str):
        super().__init__(f"{message}: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ContentHashMismatchError(IntegrityError):
    def __init__(self, expected: str, actual: str):
        super().__init__("Content hash mismatch", expected=expected, actual=actual)


class ChecksumMismatchError(IntegrityError):
    def __init__(self, expected: str, actual: str):
        super().__init__("Checksum verification failed", expected=expected, actual=actual)


# Lookup errors
class KeyNotFoundError(IdentikeyError, KeyError):
    def __init__(self, fingerprint: str):
        self.fingerprint = fingerprint
        super().__init__(f"Private key not found for fingerprint: {fingerprint}")

    def __str__(self) -> str:
        return str(self.args[0])


# Storage errors
class StorageError(IdentikeyError):
    pass


class BlobNotFoundError(StorageError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Blob not found: {key}")


# Supporting tooling
class ArmorError(IdentikeyError):
    pass


class KeyFileError(IdentikeyError):
    pass


class PersonaError(IdentikeyError):
    pass
