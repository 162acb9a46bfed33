# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Per-move outcome derivation shared with the house ledger.

Definition
----------
h   = Keccak-256( abi.encode(bytes userSecret, bytes houseSecret,
                             address account, uint256 moveIndex) )
win = (uint256(h) & 1) == 0

The ledger evaluates the same expression on-chain when the session is
settled, so the encoding order and types here are fixed: any drift makes the
locally predicted outcome disagree with the settled one.
"""

from __future__ import annotations

from typing import Any, List

from ..utils.abi import encode_abi
from ..utils.hash import keccak_256
from ..utils.hexutil import BytesLike

MOVE_ABI_TYPES = ("bytes", "bytes", "address", "uint256")


def encode_move(user_secret: BytesLike, house_secret: BytesLike, account: Any, move_index: int) -> bytes:
    """ABI-encode the outcome inputs exactly as the ledger does."""
    if move_index < 0:
        raise ValueError("move_index must be non-negative")
    return encode_abi(
        MOVE_ABI_TYPES,
        [bytes(user_secret), bytes(house_secret), account, move_index],
    )


def move_hash(user_secret: BytesLike, house_secret: BytesLike, account: Any, move_index: int) -> bytes:
    return keccak_256(encode_move(user_secret, house_secret, account, move_index))


def move_outcome(user_secret: BytesLike, house_secret: BytesLike, account: Any, move_index: int) -> bool:
    """Return True (win) iff the lowest bit of the move hash is 0."""
    h = move_hash(user_secret, house_secret, account, move_index)
    return (h[-1] & 1) == 0


def move_outcomes(user_secret: BytesLike, house_secret: BytesLike, account: Any, count: int) -> List[bool]:
    """Outcomes for move indices 0..count-1."""
    return [move_outcome(user_secret, house_secret, account, i) for i in range(count)]


__all__ = [
    "MOVE_ABI_TYPES",
    "encode_move",
    "move_hash",
    "move_outcome",
    "move_outcomes",
]
