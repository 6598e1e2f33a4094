from __future__ import annotations

import io
import struct
from dataclasses import dataclass
from typing import Union

import cbor2

from .constants import HEADER_MIN_SIZE, HEADER_VERSION, METADATA_SIZE_LIMIT, U16_MAX
from .errors import HeaderFormatError, MetadataTooLargeError, SchemaError, UnsupportedVersionError
from .schema import BlobHeader, BlobMetadata


_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")

# The length field is a u16, so the effective cap is the smaller of the two.
METADATA_MAX_BYTES = min(METADATA_SIZE_LIMIT, U16_MAX)

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class ParsedHeader:
    header: BlobHeader
    ciphertext_offset: int


def build_header(metadata: BlobMetadata, fingerprint: str) -> bytes:
    """Serialize the wire header preceding a box ciphertext.

    Layout: ``version u8 | fp_len u16be | fp utf-8 | md_len u16be | cbor(md)``.
    """
    header = BlobHeader(version=HEADER_VERSION, key_fingerprint=fingerprint, metadata=metadata)
    fp_bytes = header.key_fingerprint.encode("utf-8")
    md_bytes = cbor2.dumps(header.metadata.to_wire())
    if len(md_bytes) > METADATA_MAX_BYTES:
        raise MetadataTooLargeError(
            "Encoded metadata exceeds size limit",
            field="metadata",
            expected=f"<= {METADATA_MAX_BYTES} bytes",
            actual=len(md_bytes),
        )
    return b"".join(
        (
            _U8.pack(header.version),
            _U16.pack(len(fp_bytes)),
            fp_bytes,
            _U16.pack(len(md_bytes)),
            md_bytes,
        )
    )


def parse_header(blob: BytesLike) -> ParsedHeader:
    """Parse and validate the header at the start of ``blob``.

    The ciphertext is not copied; slice ``blob`` at ``ciphertext_offset``.
    """
    view = memoryview(blob)
    total = len(view)
    if total < HEADER_MIN_SIZE:
        raise HeaderFormatError(
            "Blob too small to contain valid header",
            field="blob",
            expected=f">= {HEADER_MIN_SIZE} bytes",
            actual=total,
        )

    (version,) = _U8.unpack_from(view, 0)
    if version != HEADER_VERSION:
        raise UnsupportedVersionError(
            f"Invalid header version: {version} (expected {HEADER_VERSION})",
            field="version",
            expected=HEADER_VERSION,
            actual=version,
        )

    (fp_len,) = _U16.unpack_from(view, 1)
    offset = 3
    if fp_len > total - offset:
        raise HeaderFormatError(
            "Fingerprint length exceeds blob size",
            field="fingerprintLength",
            expected=f"<= {total - offset}",
            actual=fp_len,
        )
    try:
        fingerprint = bytes(view[offset : offset + fp_len]).decode("utf-8")
    except UnicodeDecodeError:
        raise HeaderFormatError(
            "Fingerprint is not valid UTF-8",
            field="keyFingerprint",
            expected="utf-8",
            actual=bytes(view[offset : offset + fp_len]).hex(),
        ) from None
    offset += fp_len

    if total - offset < _U16.size:
        raise HeaderFormatError(
            "Blob too small to contain metadata length",
            field="metadataLength",
            expected=f">= {_U16.size} bytes",
            actual=total - offset,
        )
    (md_len,) = _U16.unpack_from(view, offset)
    offset += _U16.size
    if md_len > total - offset:
        raise HeaderFormatError(
            "Metadata length exceeds blob size",
            field="metadataLength",
            expected=f"<= {total - offset}",
            actual=md_len,
        )
    if md_len > METADATA_MAX_BYTES:
        raise MetadataTooLargeError(
            "Encoded metadata exceeds size limit",
            field="metadata",
            expected=f"<= {METADATA_MAX_BYTES} bytes",
            actual=md_len,
        )

    # read_size=1 keeps the stream position at the end of the decoded item.
    md_stream = io.BytesIO(bytes(view[offset : offset + md_len]))
    try:
        decoded = cbor2.CBORDecoder(md_stream, read_size=1).decode()
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise HeaderFormatError(
            "Failed to decode CBOR metadata",
            field="metadata",
            expected="well-formed CBOR",
            actual=str(exc),
        ) from exc
    consumed = md_stream.tell()
    if consumed != md_len:
        raise HeaderFormatError(
            "Unexpected data after CBOR metadata",
            field="metadata",
            expected=md_len,
            actual=consumed,
        )
    offset += md_len

    try:
        header = BlobHeader(
            version=version,
            key_fingerprint=fingerprint,
            metadata=BlobMetadata.from_wire(decoded),
        )
    except TypeError as exc:
        raise SchemaError("Invalid header", field="header", expected="valid header", actual=str(exc)) from exc
    return ParsedHeader(header=header, ciphertext_offset=offset)


__all__ = ["METADATA_MAX_BYTES", "ParsedHeader", "build_header", "parse_header"]
