from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .constants import CHECKSUM_PATTERN, DEFAULT_ALGORITHM, HEADER_VERSION
from .errors import SchemaError
from .fingerprint import is_valid_fingerprint


_CHECKSUM_RE = re.compile(CHECKSUM_PATTERN)

# wire key -> attribute name
_WIRE_FIELDS = {
    "algorithm": "algorithm",
    "timestamp": "timestamp",
    "originalFilename": "original_filename",
    "contentType": "content_type",
    "plaintextChecksum": "plaintext_checksum",
}
_REQUIRED_WIRE_FIELDS = ("algorithm", "timestamp")
_ATTR_FIELDS = frozenset(_WIRE_FIELDS.values())


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_str(field: str, value: Any, *, optional: bool = False) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str):
        raise SchemaError(
            "Invalid metadata field type",
            field=field,
            expected="str",
            actual=type(value).__name__,
        )


@dataclass(frozen=True)
class BlobMetadata:
    """Descriptive metadata carried in every blob header."""

    algorithm: str
    timestamp: int
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    plaintext_checksum: Optional[str] = None

    def __post_init__(self) -> None:
        _require_str("algorithm", self.algorithm)
        if not self.algorithm:
            raise SchemaError("Algorithm must not be empty", field="algorithm", expected="non-empty", actual="''")
        if not _is_int(self.timestamp):
            raise SchemaError(
                "Invalid metadata field type",
                field="timestamp",
                expected="int",
                actual=type(self.timestamp).__name__,
            )
        if self.timestamp < 0:
            raise SchemaError("Timestamp must be non-negative", field="timestamp", expected=">= 0", actual=self.timestamp)
        _require_str("originalFilename", self.original_filename, optional=True)
        _require_str("contentType", self.content_type, optional=True)
        _require_str("plaintextChecksum", self.plaintext_checksum, optional=True)
        if self.plaintext_checksum is not None and not _CHECKSUM_RE.match(self.plaintext_checksum):
            raise SchemaError(
                "Plaintext checksum must be 64 lowercase hex characters",
                field="plaintextChecksum",
                expected=CHECKSUM_PATTERN,
                actual=self.plaintext_checksum,
            )

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for wire_key, attr in _WIRE_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                out[wire_key] = value
        return out

    @classmethod
    def from_wire(cls, obj: Any) -> "BlobMetadata":
        if not isinstance(obj, dict):
            raise SchemaError("Metadata must be a map", field="metadata", expected="map", actual=type(obj).__name__)
        for key in obj:
            if key not in _WIRE_FIELDS:
                raise SchemaError("Unknown metadata field", field="metadata", expected=sorted(_WIRE_FIELDS), actual=key)
        for key in _REQUIRED_WIRE_FIELDS:
            if key not in obj:
                raise SchemaError("Missing required metadata field", field=key, expected="present", actual="missing")
        return cls(**{_WIRE_FIELDS[k]: v for k, v in obj.items()})

    @classmethod
    def with_defaults(cls, partial: Optional[Mapping[str, Any]], now_ms: int) -> "BlobMetadata":
        """Build metadata from snake_case ``partial``, filling algorithm and timestamp."""
        fields = dict(partial or {})
        for key in fields:
            if key not in _ATTR_FIELDS:
                raise SchemaError("Unknown metadata field", field="metadata", expected=sorted(_ATTR_FIELDS), actual=key)
        if fields.get("algorithm") is None:
            fields["algorithm"] = DEFAULT_ALGORITHM
        if fields.get("timestamp") is None:
            fields["timestamp"] = now_ms
        return cls(**fields)


@dataclass(frozen=True)
class BlobHeader:
    version: int
    key_fingerprint: str
    metadata: BlobMetadata

    def __post_init__(self) -> None:
        if not _is_int(self.version) or self.version != HEADER_VERSION:
            raise SchemaError("Invalid header version", field="version", expected=HEADER_VERSION, actual=self.version)
        if not is_valid_fingerprint(self.key_fingerprint):
            raise SchemaError(
                "Invalid key fingerprint",
                field="keyFingerprint",
                expected="base58, 43-44 chars",
                actual=self.key_fingerprint,
            )
        if not isinstance(self.metadata, BlobMetadata):
            raise SchemaError(
                "Invalid metadata",
                field="metadata",
                expected="BlobMetadata",
                actual=type(self.metadata).__name__,
            )


__all__ = ["BlobHeader", "BlobMetadata"]
