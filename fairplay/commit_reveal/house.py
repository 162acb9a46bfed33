# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
"""
Where the client obtains the house secret.

The house secret opens the ledger's published house commitment and, together
with the session secret, decides every move. Reading it is a trust boundary:
a client that knows it before choosing a move can predict the outcome. The
engine therefore never reaches for it implicitly; the state machine is handed
a `HouseSecretSource` and asks it at the two points it is needed (local
outcome prediction in `play()` and the reveal in `settle()`).

`StaticHouseSecret` is the configured-value source (the seed is read from
configuration, e.g. `FAIRPLAY_HOUSE_SEED`). Deployments that reveal the house
secret some other way supply their own source.

Seed text convention (shared with `fairplay.admin.commitment_preview`):
- "0x…" that decodes as non-empty hex → the decoded bytes
- any other text (including "0x…" that is not hex) → its UTF-8 bytes
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..errors import InvalidSecretFormat
from ..utils.hexutil import from_hex


def decode_seed(seed: str) -> bytes:
    """Turn operator seed text into the raw house-secret bytes."""
    if not isinstance(seed, str) or seed == "":
        raise InvalidSecretFormat("house seed must be a non-empty string")
    if seed.startswith(("0x", "0X")):
        try:
            raw = from_hex(seed)
        except ValueError:
            raw = b""
        if raw:
            return raw
    return seed.encode("utf-8")


@runtime_checkable
class HouseSecretSource(Protocol):
    """Supplies the house secret for outcome prediction and settlement."""

    def house_secret(self) -> bytes: ...


class StaticHouseSecret:
    """House secret taken from a configured seed string."""

    __slots__ = ("_secret",)

    def __init__(self, seed: str) -> None:
        self._secret = decode_seed(seed)

    @classmethod
    def from_bytes(cls, secret: bytes) -> "StaticHouseSecret":
        inst = cls.__new__(cls)
        inst._secret = bytes(secret)
        return inst

    def house_secret(self) -> bytes:
        return self._secret

    def __repr__(self) -> str:
        return "StaticHouseSecret(<redacted>)"


__all__ = ["decode_seed", "HouseSecretSource", "StaticHouseSecret"]
