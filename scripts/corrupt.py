from __future__ import annotations

import argparse
import os
import random
import struct
import sys
from typing import Optional

from identikey.errors import IdentikeyError
from identikey.header import parse_header


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.blob, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_ciphertext(args: argparse.Namespace) -> None:
    with open(args.blob, "rb") as f:
        blob = f.read()
    parsed = parse_header(blob)
    off = parsed.ciphertext_offset + args.within
    if args.within < 0 or off >= len(blob):
        raise ValueError(f"--within must be within ciphertext length (0..{len(blob) - parsed.ciphertext_offset - 1})")
    _flip_byte(args.blob, off, xor_val=args.xor)
    print(f"Flipped 1 byte in ciphertext at blob offset {off}")


def cmd_fingerprint_length(args: argparse.Namespace) -> None:
    """Overwrite the header's fingerprint length field (bytes 1-2)."""
    with open(args.blob, "r+b") as f:
        head = f.read(3)
        if len(head) < 3:
            raise ValueError("Blob too short to hold a fingerprint length")
        f.seek(1)
        f.write(struct.pack(">H", args.value & 0xFFFF))
        f.flush()
        os.fsync(f.fileno())
    print(f"Set fingerprint length to {args.value & 0xFFFF}")


def cmd_random(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    flips = 0
    size = os.path.getsize(args.blob)
    with open(args.blob, "r+b") as f:
        for _ in range(args.count):
            pos = rng.randrange(0, size)
            f.seek(pos)
            b = f.read(1)
            if not b:
                continue
            f.seek(pos)
            f.write(bytes([b[0] ^ (args.xor & 0xFF)]))
            flips += 1
        f.flush()
        os.fsync(f.fileno())
    print(f"Flipped {flips} byte(s) at random offsets")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="identikey.corrupt", description="Corrupt identikey blobs for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute blob offset")
    p_off.add_argument("blob", help="Path to blob")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in blob")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_ct = sub.add_parser("ciphertext", help="Flip a byte past the header")
    p_ct.add_argument("blob", help="Path to blob")
    p_ct.add_argument("--within", type=int, default=0, help="Byte offset past the header (default 0)")
    p_ct.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_ct.set_defaults(func=cmd_ciphertext)

    p_fp = sub.add_parser("fingerprint-length", help="Overwrite the header fingerprint length field")
    p_fp.add_argument("blob", help="Path to blob")
    p_fp.add_argument("--value", type=lambda x: int(x, 0), default=0xFFFF, help="New u16 value (default 0xFFFF)")
    p_fp.set_defaults(func=cmd_fingerprint_length)

    p_rand = sub.add_parser("random", help="Flip N random bytes anywhere in the blob")
    p_rand.add_argument("blob", help="Path to blob")
    p_rand.add_argument("--count", type=int, default=1, help="Number of random byte flips (default 1)")
    p_rand.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_rand.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_rand.set_defaults(func=cmd_random)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (IdentikeyError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
