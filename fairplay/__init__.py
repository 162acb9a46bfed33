"""
Fairplay commit–reveal session engine.

This package provides the client-side engine used to wager against a house
ledger with provably-fair outcomes:
- a per-session secret bound to the ledger by a Keccak-256 commitment,
- local outcome prediction with the ledger's own hash function,
- lock accounting of unsettled wagers against the ledger balance,
- one batched settlement/reveal per session and recovery after reloads.

Only light, stable exports are surfaced here to avoid import cycles.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
