"""
Moving value in and out of the house.

Every successful deposit or withdrawal emits the balance-updated signal so
open `SessionLedgerView`s refresh without waiting for their next poll.
"""

from __future__ import annotations

import logging
from typing import Optional

from .errors import ConnectivityError, InsufficientFunds, TransactionRejected
from .ledger import Ledger
from .ledger.allowance import Token, ensure_allowance
from .session.signals import BALANCE_UPDATED, BalanceSignal
from .types.core import TxReceipt
from .types.result import Failed

log = logging.getLogger(__name__)

HOUSE_SPENDER = "house"


class FundsManager:
    def __init__(
        self,
        ledger: Ledger,
        token: Optional[Token] = None,
        *,
        spender: str = HOUSE_SPENDER,
        signal: BalanceSignal = BALANCE_UPDATED,
    ) -> None:
        self.ledger = ledger
        self.token = token
        self.spender = spender
        self.signal = signal

    def _account(self, action: str) -> str:
        account = self.ledger.account
        if not account:
            raise ConnectivityError(action)
        return account

    async def deposit(self, amount: int) -> TxReceipt:
        """Approve (if a wallet token is configured) and deposit `amount`."""
        account = self._account("deposit")
        if amount <= 0:
            raise ValueError("amount must be > 0")
        if self.token is not None:
            wallet = await self.token.balance_of(account)
            if wallet < amount:
                raise InsufficientFunds(required=amount, available=wallet)
            res = await ensure_allowance(self.token, account, self.spender, amount)
            if isinstance(res, Failed):
                raise TransactionRejected(res.reason, action="approve")
        receipt = await self.ledger.deposit(amount)
        log.info("deposited %d for %s tx=%s", amount, account, receipt.tx_hash)
        await self.signal.emit(account)
        return receipt

    async def withdraw(self, amount: int) -> TxReceipt:
        account = self._account("withdraw")
        if amount <= 0:
            raise ValueError("amount must be > 0")
        receipt = await self.ledger.withdraw(amount)
        log.info("withdrew %d for %s tx=%s", amount, account, receipt.tx_hash)
        await self.signal.emit(account)
        return receipt

    async def withdraw_all(self) -> TxReceipt:
        account = self._account("withdraw_all")
        receipt = await self.ledger.withdraw_all()
        log.info("withdrew full balance for %s tx=%s", account, receipt.tx_hash)
        await self.signal.emit(account)
        return receipt


__all__ = ["FundsManager", "HOUSE_SPENDER"]
