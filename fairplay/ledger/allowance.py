"""
Token allowance preparation for house deposits.

A deposit pulls tokens from the player's wallet, so the house must first be
approved as spender. Some tokens refuse to change a non-zero allowance to a
different non-zero value; that case is reported as `NeedsReset` and the reset
to zero is an explicit, visible second attempt in `ensure_allowance`.
"""

from __future__ import annotations

import logging
from typing import Protocol

from ..constants import REASON_APPROVE_NONZERO
from ..errors import TransactionRejected
from ..types.core import TxReceipt
from ..types.result import Failed, NeedsReset, Ok, StepResult

log = logging.getLogger(__name__)


class Token(Protocol):
    """Wallet token bound to the connected signer."""

    async def balance_of(self, account: str) -> int: ...

    async def allowance(self, owner: str, spender: str) -> int: ...

    async def approve(self, spender: str, amount: int) -> TxReceipt: ...


async def try_approve(token: Token, owner: str, spender: str, amount: int) -> StepResult:
    """Single approval attempt; never raises for ledger rejections."""
    current = await token.allowance(owner, spender)
    if current >= amount:
        return Ok(changed=False)
    try:
        await token.approve(spender, amount)
    except TransactionRejected as e:
        if current != 0 and REASON_APPROVE_NONZERO in e.reason:
            return NeedsReset(current=current)
        return Failed(reason=e.reason)
    return Ok(changed=True)


async def ensure_allowance(token: Token, owner: str, spender: str, amount: int) -> StepResult:
    res = await try_approve(token, owner, spender, amount)
    if isinstance(res, NeedsReset):
        log.info("allowance %d must be reset to zero before approving %d", res.current, amount)
        await token.approve(spender, 0)
        res = await try_approve(token, owner, spender, amount)
    return res


__all__ = ["Token", "try_approve", "ensure_allowance"]
