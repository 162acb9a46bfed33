"""
Process-wide "house balance updated" broadcast.

Anything that moves value on the ledger (deposit, withdraw, settle) emits on
`BALANCE_UPDATED`; every `SessionLedgerView` subscribes so its cached balance
is refreshed immediately instead of waiting for the next poll tick.

Callbacks may be plain functions or coroutine functions. A failing subscriber
is logged and does not prevent delivery to the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

log = logging.getLogger(__name__)

Callback = Callable[[Optional[str]], Union[None, Awaitable[None]]]

HOUSE_BALANCE_UPDATED = "house-balance-updated"


class BalanceSignal:
    """A tiny publish/subscribe hub keyed by a single topic."""

    def __init__(self, name: str = HOUSE_BALANCE_UPDATED) -> None:
        self.name = name
        self._subs: List[Callback] = []

    def subscribe(self, cb: Callback) -> Callable[[], None]:
        """Register `cb`; returns a function that unsubscribes it."""
        self._subs.append(cb)

        def _unsubscribe() -> None:
            try:
                self._subs.remove(cb)
            except ValueError:
                pass

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._subs)

    async def emit(self, account: Optional[str] = None) -> int:
        """
        Deliver to every subscriber (in subscription order). Returns the number
        of callbacks that completed without error.
        """
        delivered = 0
        for cb in list(self._subs):
            try:
                res: Any = cb(account)
                if inspect.isawaitable(res):
                    await res
                delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("%s subscriber %r failed: %s", self.name, cb, e)
        log.debug("%s delivered to %d/%d subscribers", self.name, delivered, len(self._subs))
        return delivered


BALANCE_UPDATED = BalanceSignal()

__all__ = ["BalanceSignal", "BALANCE_UPDATED", "HOUSE_BALANCE_UPDATED", "Callback"]
