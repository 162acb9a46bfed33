"""
Hex helpers with 0x-prefix handling.

Unlike lenient parsers, `from_hex` is strict: odd-length input and non-hex
characters are errors, since the values parsed here are secrets and hashes
whose exact bytes matter.
"""

from __future__ import annotations

import binascii
from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]


def to_hex(b: BytesLike, prefix: str = "0x") -> str:
    """Convert bytes to a lower-case hex string with optional prefix (default `0x`)."""
    if not isinstance(b, (bytes, bytearray, memoryview)):
        raise TypeError("to_hex expects bytes-like input")
    return (prefix or "") + binascii.hexlify(bytes(b)).decode("ascii")


def from_hex(s: str, *, length: Optional[int] = None) -> bytes:
    """
    Parse hex into bytes. Accepts strings with/without 0x prefix and ignores
    leading/trailing whitespace.

    Raises ValueError on odd length, non-hex characters, or when `length` is
    given and the decoded size differs.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects str input")
    s = s.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    if len(s) % 2:
        raise ValueError("hex string has odd length")
    try:
        raw = binascii.unhexlify(s)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"invalid hex string: {e}") from e
    if length is not None and len(raw) != length:
        raise ValueError(f"expected {length} bytes, got {len(raw)}")
    return raw


__all__ = ["to_hex", "from_hex", "BytesLike"]
