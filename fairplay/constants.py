"""
Fairplay constants.

This module centralizes:
- Sizes of secrets and commitment hashes
- Game identifiers understood by the house ledger
- Persistence key templates for crash/reload recovery
- Ledger rejection reasons the engine reacts to
- Basis-point denominators and polling defaults

Operational knobs may be overridden via `fairplay.config.FairplayConfig`, but
code that needs stable compile-time defaults can import from here.
"""

from __future__ import annotations

# -----------------------------
# Sizes
# -----------------------------
SECRET_LEN: int = 32        # bytes of a session secret
HASH_LEN: int = 32          # bytes of a Keccak-256 digest
ADDRESS_LEN: int = 20       # bytes of an EVM-style account address
WORD_LEN: int = 32          # ABI word size

ZERO_HASH: bytes = b"\x00" * HASH_LEN

# -----------------------------
# Games
# -----------------------------
# Keep these stable; the ledger routes settle_batch() by game id.
DEFAULT_GAME: str = "crash"
GAME_IDS = {
    "mines": 1,
    "crash": 2,
}

# -----------------------------
# Persistence keys
# -----------------------------
# `{game}` is the game name, `{account}` the lower-cased account address.
KEY_COMMIT_SEED: str = "{game}-commit-seed:{account}"
KEY_HOUSE_COMMIT: str = "{game}-session-house-commit:{account}"

# -----------------------------
# Ledger rejection reasons
# -----------------------------
REASON_ACTIVE_SESSION: str = "ACTIVE_SESSION"
REASON_NO_SESSION: str = "NO_SESSION"
REASON_BAD_USER_SECRET: str = "BAD_USER_SECRET"
REASON_BAD_HOUSE_SECRET: str = "BAD_HOUSE_SECRET"
REASON_INSUFFICIENT_BALANCE: str = "INSUFFICIENT_BALANCE"
REASON_NOT_OWNER: str = "NOT_OWNER"
REASON_APPROVE_NONZERO: str = "APPROVE_NONZERO"

# -----------------------------
# Rates / timing
# -----------------------------
BPS_DENOMINATOR: int = 10_000
DEFAULT_POLL_INTERVAL_S: float = 12.0

__all__ = [
    "SECRET_LEN",
    "HASH_LEN",
    "ADDRESS_LEN",
    "WORD_LEN",
    "ZERO_HASH",
    "DEFAULT_GAME",
    "GAME_IDS",
    "KEY_COMMIT_SEED",
    "KEY_HOUSE_COMMIT",
    "REASON_ACTIVE_SESSION",
    "REASON_NO_SESSION",
    "REASON_BAD_USER_SECRET",
    "REASON_BAD_HOUSE_SECRET",
    "REASON_INSUFFICIENT_BALANCE",
    "REASON_NOT_OWNER",
    "REASON_APPROVE_NONZERO",
    "BPS_DENOMINATOR",
    "DEFAULT_POLL_INTERVAL_S",
]
