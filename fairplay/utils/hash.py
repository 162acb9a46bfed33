"""
Keccak-256 helpers.

The house ledger is an EVM contract, so commitments and outcome hashes use
Keccak-256 (the pre-standard SHA-3 padding), NOT hashlib's sha3_256. The
digest is provided by pycryptodome's `Crypto.Hash.keccak`.
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak

from .hexutil import BytesLike


def keccak_256(data: BytesLike) -> bytes:
    """Keccak-256 digest of `data`."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("keccak_256 expects bytes-like input")
    h = _keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


__all__ = ["keccak_256"]
