"""
fairplay.ledger
===============

The value-custodying ledger ("house") as seen by the session engine.

The engine never talks to a chain directly. It is handed a `Ledger` already
bound to the connected signer; every method is a coroutine and a definite
revert surfaces as `fairplay.errors.TransactionRejected` with the ledger's
reason string (e.g. "ACTIVE_SESSION"). Any other exception from a
state-changing call means the outcome is unknown.

Submodules:
    - memory.py     : in-process reference ledger and token (tests, CLI).
    - receipts.py   : payout projection and receipt decoding.
    - allowance.py  : token allowance preparation for deposits.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from ..types.core import TxReceipt


@runtime_checkable
class Ledger(Protocol):
    """Signer-bound house ledger."""

    @property
    def account(self) -> Optional[str]:
        """Connected signer address, or None when no wallet is connected."""
        ...

    async def balance_of(self, account: str) -> int: ...

    async def deposit(self, amount: int) -> TxReceipt: ...

    async def withdraw(self, amount: int) -> TxReceipt: ...

    async def withdraw_all(self) -> TxReceipt: ...

    async def user_commit(self, commitment: bytes) -> TxReceipt: ...

    async def user_commitment(self, account: str) -> bytes:
        """Active commitment for `account` (all-zero when no session is live)."""
        ...

    async def current_house_commitment(self) -> bytes: ...

    async def settle_batch(
        self,
        game_id: int,
        wagers: Sequence[int],
        user_secret: bytes,
        house_secret: bytes,
    ) -> TxReceipt: ...

    async def house_edge_bps(self) -> int: ...

    async def fee_bps(self) -> int: ...

    async def set_current_house_commitment(self, commitment: bytes) -> TxReceipt:
        """Operator-only rotation of the published house commitment."""
        ...


__all__ = ["Ledger"]
