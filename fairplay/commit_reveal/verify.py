# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Verify that a revealed secret matches a prior commitment.

Definition
----------
Given a prior commitment C and a revealed secret s we recompute

    C' = Keccak-256(s)

and check C' == C using a constant-time comparison.

This module exposes:
- `normalize_commitment(...)`  : turn hex/bytes into 32 bytes.
- `is_unset(...)`              : True for absent, empty or all-zero commitments.
- `verify_house_secret(...)`   : raises HouseCommitmentMismatch on mismatch.
- `matches_commitment(...)`    : boolean form for user secrets.
"""

from __future__ import annotations

import hmac
from typing import Optional, Union

from ..constants import HASH_LEN, ZERO_HASH
from ..errors import HouseCommitmentMismatch
from ..utils.hexutil import BytesLike, from_hex, to_hex
from .commit import commitment_of

CommitmentLike = Union[BytesLike, str]


def normalize_commitment(commitment: CommitmentLike) -> bytes:
    """
    Normalize a commitment into 32 raw bytes.

    Accepts:
      - bytes/bytearray/memoryview (must be 32 bytes)
      - hex string with/without 0x prefix (must decode to 32 bytes)
    """
    if isinstance(commitment, str):
        c = from_hex(commitment)
    elif isinstance(commitment, (bytes, bytearray, memoryview)):
        c = bytes(commitment)
    else:
        raise TypeError("expected bytes-like object or hex string")

    if len(c) != HASH_LEN:
        raise ValueError(f"commitment must be exactly {HASH_LEN} bytes")
    return c


def is_unset(commitment: Optional[CommitmentLike]) -> bool:
    """A commitment is unset when absent, '0x', empty, or all zero bytes."""
    if commitment is None:
        return True
    if isinstance(commitment, str):
        body = commitment.strip().lower()
        if body.startswith("0x"):
            body = body[2:]
        return body == "" or set(body) == {"0"}
    raw = bytes(commitment)
    return len(raw) == 0 or raw == ZERO_HASH[: len(raw)]


def matches_commitment(secret: BytesLike, commitment: CommitmentLike) -> bool:
    return hmac.compare_digest(commitment_of(secret), normalize_commitment(commitment))


def verify_house_secret(captured: CommitmentLike, house_secret: BytesLike) -> bool:
    """
    Check Keccak-256(house_secret) against the commitment captured at session
    commit time.

    Raises
    ------
    HouseCommitmentMismatch
        If the house secret does not open the captured commitment.
    """
    expected = normalize_commitment(captured)
    got = commitment_of(house_secret)
    if hmac.compare_digest(expected, got):
        return True
    raise HouseCommitmentMismatch(expected_hex=to_hex(expected), got_hex=to_hex(got))


__all__ = [
    "CommitmentLike",
    "normalize_commitment",
    "is_unset",
    "matches_commitment",
    "verify_house_secret",
]
