"""
CRC24 (OpenPGP, RFC 4880 section 6.1) with a precomputed table.
"""

_INIT = 0xB704CE
_POLY = 0x1864CFB


def _make_table():
    tbl = []
    for n in range(256):
        c = n << 16
        for _ in range(8):
            c <<= 1
            if c & 0x1000000:
                c ^= _POLY
        tbl.append(c & 0xFFFFFF)
    return tuple(tbl)


_TABLE = _make_table()


def crc24(data: bytes, crc: int = _INIT) -> int:
    c = crc & 0xFFFFFF
    for b in data:
        c = ((c << 8) & 0xFFFFFF) ^ _TABLE[((c >> 16) ^ b) & 0xFF]
    return c
