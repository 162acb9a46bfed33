"""
fairplay.utils.abi — the ledger's canonical argument encoding.

What this provides
------------------
- enc_u256 / enc_address           : single 32-byte ABI words
- parse_address                    : 0x-hex account → 20 raw bytes
- encode_abi(types, values)        : Solidity `abi.encode(...)` for the small
                                     set of types the outcome hash needs

Binary layout (Solidity ABI, non-packed)
----------------------------------------
Static types (uint256, address, bytes32) occupy one 32-byte head word.
Dynamic `bytes` occupy a head word holding the byte offset of their tail,
measured from the start of the encoding; the tail is

    u256(len) || data || zero-padding to a multiple of 32

Tails are appended in argument order. The output must match the contract's
`abi.encode` byte-for-byte, otherwise locally predicted outcomes diverge from
the settled ones.
"""

from __future__ import annotations

from typing import Any, List, Sequence

from ..constants import ADDRESS_LEN, WORD_LEN
from .hexutil import from_hex

_U256_MAX = (1 << 256) - 1

_STATIC_TYPES = ("uint256", "address", "bytes32")
_DYNAMIC_TYPES = ("bytes",)


def _pad_right(b: bytes) -> bytes:
    rem = len(b) % WORD_LEN
    return b if rem == 0 else b + b"\x00" * (WORD_LEN - rem)


def enc_u256(n: int) -> bytes:
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError("uint256 expects an int")
    if not (0 <= n <= _U256_MAX):
        raise ValueError("uint256 out of range")
    return n.to_bytes(WORD_LEN, "big")


def parse_address(addr: Any) -> bytes:
    """Accept 20 raw bytes or 0x-hex (checksum case is ignored)."""
    if isinstance(addr, (bytes, bytearray)):
        raw = bytes(addr)
    elif isinstance(addr, str):
        raw = from_hex(addr)
    else:
        raise TypeError("address expects bytes or a hex string")
    if len(raw) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes (got {len(raw)})")
    return raw


def enc_address(addr: Any) -> bytes:
    return b"\x00" * (WORD_LEN - ADDRESS_LEN) + parse_address(addr)


def _enc_static(typ: str, value: Any) -> bytes:
    if typ == "uint256":
        return enc_u256(value)
    if typ == "address":
        return enc_address(value)
    # bytes32
    if not isinstance(value, (bytes, bytearray)) or len(value) != WORD_LEN:
        raise ValueError("bytes32 expects exactly 32 bytes")
    return bytes(value)


def _enc_bytes_tail(value: Any) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError("bytes expects a bytes-like value")
    data = bytes(value)
    return enc_u256(len(data)) + _pad_right(data)


def encode_abi(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """
    Encode `values` as Solidity's `abi.encode(types...)`.

    Example:
        encode_abi(["bytes", "bytes", "address", "uint256"],
                   [user_secret, house_secret, account, move_index])
    """
    if len(types) != len(values):
        raise ValueError("types and values must have equal length")
    for t in types:
        if t not in _STATIC_TYPES and t not in _DYNAMIC_TYPES:
            raise ValueError(f"unsupported ABI type: {t!r}")

    head_size = WORD_LEN * len(types)
    heads: List[bytes] = []
    tails: List[bytes] = []
    tail_offset = head_size
    for typ, value in zip(types, values):
        if typ in _DYNAMIC_TYPES:
            tail = _enc_bytes_tail(value)
            heads.append(enc_u256(tail_offset))
            tails.append(tail)
            tail_offset += len(tail)
        else:
            heads.append(_enc_static(typ, value))
    return b"".join(heads) + b"".join(tails)


__all__ = ["enc_u256", "enc_address", "parse_address", "encode_abi"]
