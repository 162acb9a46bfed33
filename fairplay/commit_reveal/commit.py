# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Session secrets and their commitments.

Definition
----------
C = Keccak-256( secret )

- `secret` is 32 uniformly random bytes drawn from the OS CSPRNG.
- The commitment is a single Keccak-256 over the raw secret bytes, with no
  domain tag: the ledger recomputes exactly this value when the secret is
  revealed at settlement.

This module provides `generate_secret()`, `commitment_of(...)`, a hex-friendly
`commitment_hex(...)` and `parse_secret(...)` for secrets that arrive as text
(persisted records, manual recovery input).
"""

from __future__ import annotations

import secrets

from ..constants import SECRET_LEN
from ..errors import InvalidSecretFormat
from ..utils.hash import keccak_256
from ..utils.hexutil import BytesLike, from_hex, to_hex


def generate_secret() -> bytes:
    """Return a fresh 32-byte session secret from a cryptographically secure source."""
    return secrets.token_bytes(SECRET_LEN)


def commitment_of(secret: BytesLike) -> bytes:
    """
    Compute the commitment C = Keccak-256(secret).

    Deterministic and pure: the same secret always yields the same 32 bytes.
    """
    if not isinstance(secret, (bytes, bytearray, memoryview)):
        raise TypeError("secret must be bytes")
    if len(secret) == 0:
        raise ValueError("secret must be non-empty")
    return keccak_256(secret)


def commitment_hex(secret: BytesLike) -> str:
    """Hex-encoded convenience wrapper for `commitment_of`."""
    return to_hex(commitment_of(secret))


def parse_secret(text: str) -> bytes:
    """
    Decode a 0x-hex (or bare hex) session secret into 32 raw bytes.

    Raises
    ------
    InvalidSecretFormat
        If `text` is not a string, not valid hex, or not exactly 32 bytes.
    """
    if not isinstance(text, str):
        raise InvalidSecretFormat("secret must be a hex string")
    try:
        raw = from_hex(text)
    except ValueError as e:
        raise InvalidSecretFormat(f"not-hex: {e}") from e
    if len(raw) != SECRET_LEN:
        raise InvalidSecretFormat(f"length: expected {SECRET_LEN} bytes, got {len(raw)}")
    return raw


__all__ = [
    "generate_secret",
    "commitment_of",
    "commitment_hex",
    "parse_secret",
]
