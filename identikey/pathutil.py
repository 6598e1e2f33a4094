from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union


def norm_key(key: str) -> str:
    """Normalize a storage key to a relative forward-slash path.

    Rules:
    - Reject empty keys and absolute paths
    - Convert backslashes to slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    if not isinstance(key, str) or not key:
        raise ValueError("Storage key must be a non-empty string")
    p = key.replace("\\", "/")
    if p.startswith("/") or (len(p) > 1 and p[1] == ":"):
        raise ValueError(f"Storage key may not be absolute: {key}")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Storage key may not contain '..'")
    if not parts:
        raise ValueError("Storage key must name a file")
    return "/".join(parts)


def _fsync_dir(path: Path) -> None:
    # Directory fsync is unavailable on some platforms (Windows).
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write_bytes(
    dest: Union[str, Path],
    data: bytes,
    *,
    mode: Optional[int] = 0o600,
    dir_mode: int = 0o700,
) -> None:
    """Write ``data`` to ``dest`` via temp file + fsync + ``os.replace``.

    Readers see either the old file or the complete new one.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True, mode=dir_mode)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=str(dest.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(dest))
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    _fsync_dir(dest.parent)


__all__ = ["atomic_write_bytes", "norm_key"]
