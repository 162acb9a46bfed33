"""
In-process reference ledger.

`InMemoryHouse` is a faithful, synchronous-at-heart model of the house
contract used by the tests and the `fairplay simulate` command:

- per-account house balances (deposit / withdraw),
- one active user commitment per account (`ACTIVE_SESSION` on a second one),
- an operator-published house commitment,
- `settle_batch`: both secrets are checked against their commitments, every
  move is re-evaluated with the canonical outcome function, one `GamePlayed`
  event is emitted per move and the user commitment is cleared.

Connect a signer with `house.connect(account)` to obtain a `Ledger`.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..commit_reveal.commit import commitment_of
from ..commit_reveal.outcome import move_outcome
from ..commit_reveal.verify import is_unset, normalize_commitment
from ..constants import (
    BPS_DENOMINATOR,
    REASON_ACTIVE_SESSION,
    REASON_APPROVE_NONZERO,
    REASON_BAD_HOUSE_SECRET,
    REASON_BAD_USER_SECRET,
    REASON_INSUFFICIENT_BALANCE,
    REASON_NO_SESSION,
    REASON_NOT_OWNER,
    ZERO_HASH,
)
from ..errors import TransactionRejected
from ..types.core import GamePlayed, TxReceipt
from ..utils.hash import keccak_256
from .receipts import projected_payout

_tx_counter = itertools.count(1)


def _tx_hash(tag: str) -> str:
    n = next(_tx_counter)
    return "0x" + keccak_256(f"{tag}:{n}".encode("utf-8")).hex()


def _key(account: str) -> str:
    return account.lower()


@dataclass
class InMemoryHouse:
    """State of the house contract."""

    owner: str = "0x" + "00" * 19 + "01"
    edge_bps: int = 0
    fee_bps: int = 0
    house_commitment: bytes = ZERO_HASH
    balances: Dict[str, int] = field(default_factory=dict)
    commitments: Dict[str, bytes] = field(default_factory=dict)
    events: List[GamePlayed] = field(default_factory=list)
    token: Optional["InMemoryToken"] = None

    def __post_init__(self) -> None:
        for name in ("edge_bps", "fee_bps"):
            v = getattr(self, name)
            if not 0 <= v <= BPS_DENOMINATOR:
                raise ValueError(f"{name} out of range: {v}")

    def connect(self, account: Optional[str]) -> "InMemoryLedger":
        return InMemoryLedger(self, account)

    # ---- test/operator conveniences -----------------------------------------

    def credit(self, account: str, amount: int) -> None:
        """Directly credit a house balance (bypasses the token)."""
        self.balances[_key(account)] = self.balances.get(_key(account), 0) + amount

    def balance(self, account: str) -> int:
        return self.balances.get(_key(account), 0)

    def clear_session(self, account: str) -> None:
        self.commitments.pop(_key(account), None)

    def publish_house_seed(self, house_secret: bytes) -> bytes:
        self.house_commitment = commitment_of(house_secret)
        return self.house_commitment

    # ---- contract logic --------------------------------------------------------

    def _debit(self, account: str, amount: int) -> None:
        bal = self.balance(account)
        if amount > bal:
            raise TransactionRejected(REASON_INSUFFICIENT_BALANCE)
        self.balances[_key(account)] = bal - amount

    def _settle(
        self,
        account: str,
        game_id: int,
        wagers: Sequence[int],
        user_secret: bytes,
        house_secret: bytes,
    ) -> TxReceipt:
        committed = self.commitments.get(_key(account))
        if committed is None:
            raise TransactionRejected(REASON_NO_SESSION, action="settle_batch")
        if commitment_of(user_secret) != committed:
            raise TransactionRejected(REASON_BAD_USER_SECRET, action="settle_batch")
        if is_unset(self.house_commitment) or commitment_of(house_secret) != self.house_commitment:
            raise TransactionRejected(REASON_BAD_HOUSE_SECRET, action="settle_batch")
        if not wagers or any(w <= 0 for w in wagers):
            raise TransactionRejected("BAD_WAGERS", action="settle_batch")
        if sum(wagers) > self.balance(account):
            raise TransactionRejected(REASON_INSUFFICIENT_BALANCE, action="settle_batch")

        events: List[GamePlayed] = []
        for i, w in enumerate(wagers):
            self._debit(account, w)
            win = move_outcome(user_secret, house_secret, account, i)
            payout = projected_payout(w, 1, self.edge_bps, self.fee_bps) if win else 0
            self.credit(account, payout)
            events.append(GamePlayed(account=account, game_id=game_id, wager=w, payout=payout))
        del self.commitments[_key(account)]
        self.events.extend(events)
        return TxReceipt(tx_hash=_tx_hash("settle"), events=tuple(events))


class InMemoryLedger:
    """`Ledger` bound to one signer of an `InMemoryHouse`."""

    def __init__(self, house: InMemoryHouse, account: Optional[str]) -> None:
        self.house = house
        self._account = account

    @property
    def account(self) -> Optional[str]:
        return self._account

    def _signer(self, action: str) -> str:
        if not self._account:
            raise TransactionRejected("NO_SIGNER", action=action)
        return self._account

    async def balance_of(self, account: str) -> int:
        return self.house.balance(account)

    async def deposit(self, amount: int) -> TxReceipt:
        signer = self._signer("deposit")
        if amount <= 0:
            raise TransactionRejected("ZERO_AMOUNT", action="deposit")
        token = self.house.token
        if token is not None:
            token.transfer_from(spender="house", owner=signer, recipient="house", amount=amount)
        self.house.credit(signer, amount)
        return TxReceipt(tx_hash=_tx_hash("deposit"))

    async def withdraw(self, amount: int) -> TxReceipt:
        signer = self._signer("withdraw")
        if amount <= 0:
            raise TransactionRejected("ZERO_AMOUNT", action="withdraw")
        if _key(signer) in self.house.commitments:
            raise TransactionRejected(REASON_ACTIVE_SESSION, action="withdraw")
        self.house._debit(signer, amount)
        if self.house.token is not None:
            self.house.token.mint(signer, amount)
        return TxReceipt(tx_hash=_tx_hash("withdraw"), payout=amount)

    async def withdraw_all(self) -> TxReceipt:
        signer = self._signer("withdraw_all")
        amount = self.house.balance(signer)
        if amount == 0:
            raise TransactionRejected("ZERO_AMOUNT", action="withdraw_all")
        return await self.withdraw(amount)

    async def user_commit(self, commitment: bytes) -> TxReceipt:
        signer = self._signer("user_commit")
        c = normalize_commitment(commitment)
        if is_unset(c):
            raise TransactionRejected("ZERO_COMMITMENT", action="user_commit")
        if _key(signer) in self.house.commitments:
            raise TransactionRejected(REASON_ACTIVE_SESSION, action="user_commit")
        self.house.commitments[_key(signer)] = c
        return TxReceipt(tx_hash=_tx_hash("commit"))

    async def user_commitment(self, account: str) -> bytes:
        return self.house.commitments.get(_key(account), ZERO_HASH)

    async def current_house_commitment(self) -> bytes:
        return self.house.house_commitment

    async def settle_batch(
        self,
        game_id: int,
        wagers: Sequence[int],
        user_secret: bytes,
        house_secret: bytes,
    ) -> TxReceipt:
        signer = self._signer("settle_batch")
        return self.house._settle(signer, game_id, list(wagers), bytes(user_secret), bytes(house_secret))

    async def house_edge_bps(self) -> int:
        return self.house.edge_bps

    async def fee_bps(self) -> int:
        return self.house.fee_bps

    async def set_current_house_commitment(self, commitment: bytes) -> TxReceipt:
        signer = self._signer("set_current_house_commitment")
        if _key(signer) != _key(self.house.owner):
            raise TransactionRejected(REASON_NOT_OWNER, action="set_current_house_commitment")
        self.house.house_commitment = normalize_commitment(commitment)
        return TxReceipt(tx_hash=_tx_hash("house"))


class InMemoryToken:
    """
    Minimal fungible token with allowances.

    With `zero_reset_required`, changing a non-zero allowance to another
    non-zero value is rejected (`APPROVE_NONZERO`), like some real tokens.
    The spender is addressed by name; the house uses "house".
    """

    def __init__(self, *, zero_reset_required: bool = False) -> None:
        self.zero_reset_required = zero_reset_required
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[tuple, int] = {}
        self.approvals: List[tuple] = []

    def mint(self, account: str, amount: int) -> None:
        self.balances[_key(account)] = self.balances.get(_key(account), 0) + amount

    def bind(self, owner: str) -> "BoundToken":
        return BoundToken(self, owner)

    def transfer_from(self, *, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowances.get((_key(owner), spender), 0)
        if allowed < amount:
            raise TransactionRejected("ALLOWANCE", action="transfer_from")
        bal = self.balances.get(_key(owner), 0)
        if bal < amount:
            raise TransactionRejected("TOKEN_BALANCE", action="transfer_from")
        self.allowances[(_key(owner), spender)] = allowed - amount
        self.balances[_key(owner)] = bal - amount
        self.balances[_key(recipient)] = self.balances.get(_key(recipient), 0) + amount


class BoundToken:
    """Token handle bound to an owner (the connected signer)."""

    def __init__(self, token: InMemoryToken, owner: str) -> None:
        self.token = token
        self.owner = owner

    async def balance_of(self, account: str) -> int:
        return self.token.balances.get(_key(account), 0)

    async def allowance(self, owner: str, spender: str) -> int:
        return self.token.allowances.get((_key(owner), spender), 0)

    async def approve(self, spender: str, amount: int) -> TxReceipt:
        if amount < 0:
            raise TransactionRejected("NEGATIVE_AMOUNT", action="approve")
        k = (_key(self.owner), spender)
        current = self.token.allowances.get(k, 0)
        if self.token.zero_reset_required and current != 0 and amount != 0:
            raise TransactionRejected(REASON_APPROVE_NONZERO, action="approve")
        self.token.allowances[k] = amount
        self.token.approvals.append((spender, amount))
        return TxReceipt(tx_hash=_tx_hash("approve"))


__all__ = ["InMemoryHouse", "InMemoryLedger", "InMemoryToken", "BoundToken"]
