# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
fairplay.commit_reveal
======================

Hash commitments for the session engine. Pure functions only; no state.

Typical flow:
    1) `generate_secret()` and publish `commitment_of(secret)` to the ledger.
    2) Predict each move with `move_outcome(secret, house_secret, account, i)`.
    3) At settlement the ledger re-derives the same outcomes from the revealed
       secrets; `verify_house_secret()` guards against a rotated house commitment.

Submodules:
    - commit.py   : secret generation, commitments, hex parsing.
    - outcome.py  : the ledger's canonical per-move outcome hash.
    - verify.py   : commitment normalization and opening checks.
    - house.py    : the house-secret source boundary.
"""

from __future__ import annotations

from .commit import commitment_hex, commitment_of, generate_secret, parse_secret
from .house import HouseSecretSource, StaticHouseSecret, decode_seed
from .outcome import encode_move, move_outcome, move_outcomes
from .verify import is_unset, matches_commitment, normalize_commitment, verify_house_secret

__all__ = [
    "generate_secret",
    "commitment_of",
    "commitment_hex",
    "parse_secret",
    "encode_move",
    "move_outcome",
    "move_outcomes",
    "normalize_commitment",
    "is_unset",
    "matches_commitment",
    "verify_house_secret",
    "HouseSecretSource",
    "StaticHouseSecret",
    "decode_seed",
]
