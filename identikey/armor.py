from __future__ import annotations

"""ASCII armor for keys and encrypted blobs.

Keys carry a Base58 payload on a single line; encrypted messages carry
base64 wrapped at 64 columns. Every block ends with ``=`` + base64(CRC24).
"""

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union

import base58

from .constants import (
    ARMOR_ENCRYPTED_MESSAGE,
    ARMOR_LABEL,
    ARMOR_LINE_WIDTH,
    ARMOR_PRIVATE_KEY,
    ARMOR_PUBLIC_KEY,
    ARMOR_TYPES,
)
from .crc24 import crc24
from .errors import ArmorError


_BEGIN_PREFIX = f"----- BEGIN {ARMOR_LABEL} "
_END_PREFIX = f"----- END {ARMOR_LABEL} "
_BEGIN_RE = re.compile(rf"----- BEGIN {ARMOR_LABEL} (.*?) -----")
_END_RE = re.compile(rf"----- END {ARMOR_LABEL} (.*?) -----")
_WARNING_RE = re.compile(r"UNENCRYPTED|INSECURE", re.IGNORECASE)
_KEY_TYPES = (ARMOR_PUBLIC_KEY, ARMOR_PRIVATE_KEY)


@dataclass
class ArmorResult:
    data: bytes
    armor_type: str
    headers: Dict[str, str] = field(default_factory=dict)


def _encode_crc(crc: int) -> str:
    return base64.b64encode(crc.to_bytes(3, "big")).decode("ascii")


def _decode_crc(text: str) -> int:
    try:
        raw = base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ArmorError(f"Invalid CRC24 encoding: {exc}") from exc
    if len(raw) != 3:
        raise ArmorError(f"Invalid CRC24 length: expected 3 bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def _wrap(text: str, width: int = ARMOR_LINE_WIDTH) -> str:
    return "\n".join(text[i : i + width] for i in range(0, len(text), width))


def armor(data: bytes, armor_type: str, headers: Optional[Mapping[str, str]] = None) -> str:
    if armor_type not in ARMOR_TYPES:
        raise ArmorError(f"Unknown armor type: {armor_type}")
    data = bytes(data)
    if armor_type in _KEY_TYPES:
        payload = base58.b58encode(data).decode("ascii")
    else:
        payload = _wrap(base64.b64encode(data).decode("ascii"))

    lines = [f"{_BEGIN_PREFIX}{armor_type} -----"]
    for key, value in (headers or {}).items():
        lines.append(f"{key}: {'' if value is None else value}")
    lines.append("")
    lines.append(payload)
    lines.append(f"={_encode_crc(crc24(data))}")
    lines.append(f"{_END_PREFIX}{armor_type} -----")
    return "\n".join(lines)


def dearmor(text: str) -> ArmorResult:
    lines = text.splitlines()
    begin_idx = next((i for i, ln in enumerate(lines) if ln.strip().startswith(_BEGIN_PREFIX)), -1)
    end_idx = next((i for i, ln in enumerate(lines) if ln.strip().startswith(_END_PREFIX)), -1)
    if begin_idx == -1 or end_idx == -1:
        raise ArmorError("Invalid armor format: missing BEGIN or END delimiter")
    if end_idx < begin_idx:
        raise ArmorError("Invalid armor format: END before BEGIN")

    begin_match = _BEGIN_RE.search(lines[begin_idx])
    end_match = _END_RE.search(lines[end_idx])
    if not begin_match or not end_match:
        raise ArmorError("Invalid armor format: malformed delimiter")
    begin_type, end_type = begin_match.group(1), end_match.group(1)
    if begin_type != end_type:
        raise ArmorError(f"BEGIN/END type mismatch: {begin_type} vs {end_type}")
    if begin_type not in ARMOR_TYPES:
        raise ArmorError(f"Unknown armor type: {begin_type}")
    armor_type = begin_type

    headers: Dict[str, str] = {}
    payload_start = begin_idx + 1
    for i in range(begin_idx + 1, end_idx):
        line = lines[i].strip()
        if not line:
            payload_start = i + 1
            break
        key, sep, value = line.partition(":")
        if not sep:
            raise ArmorError(f"Invalid header format: {line}")
        headers[key] = value[1:] if value.startswith(" ") else value

    payload_lines = []
    checksum: Optional[str] = None
    for i in range(payload_start, end_idx):
        line = lines[i].strip()
        if line.startswith("="):
            checksum = line[1:]
        elif line:
            payload_lines.append(line)
    if not checksum:
        raise ArmorError("Missing CRC24 checksum")

    payload = "".join(payload_lines)
    try:
        if armor_type in _KEY_TYPES:
            data = base58.b58decode(payload)
        else:
            data = base64.b64decode(payload, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise ArmorError(f"Failed to decode payload: {exc}") from exc

    expected = _decode_crc(checksum)
    actual = crc24(data)
    if actual != expected:
        raise ArmorError(f"Checksum verification failed: expected {expected:x}, got {actual:x}")

    if armor_type == ARMOR_PRIVATE_KEY and headers.get("Encrypted") == "false":
        if not _WARNING_RE.search(headers.get("Warning", "")):
            raise ArmorError("Unencrypted key missing security warning")

    return ArmorResult(data=data, armor_type=armor_type, headers=headers)


def is_armored(value: Union[str, bytes]) -> bool:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    return value.lstrip().startswith(_BEGIN_PREFIX)


def get_armor_type(text: str) -> Optional[str]:
    match = _BEGIN_RE.search(text)
    return match.group(1) if match else None


__all__ = [
    "ArmorResult",
    "armor",
    "dearmor",
    "get_armor_type",
    "is_armored",
]
