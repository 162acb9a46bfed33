"""
fairplay.utils
==============

Small helpers shared across the engine: hex conversion, Keccak-256 and the
ledger's ABI encoding.
"""

from __future__ import annotations

from .hash import keccak_256
from .hexutil import from_hex, to_hex

__all__ = ["keccak_256", "from_hex", "to_hex"]
