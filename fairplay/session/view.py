"""
Read-only view of the account's house balance.

The view caches the last balance read from the ledger and refreshes it
  - on demand (`refresh()`),
  - every `poll_interval_s` seconds while started, and
  - whenever the balance-updated signal fires.

Balance reads are best-effort: a failed read is logged and counted and the
previous value is kept. Nothing here mutates session state; the machine asks
for `available(pending_spent)` when it needs a spendable amount.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..constants import DEFAULT_POLL_INTERVAL_S
from ..ledger import Ledger
from ..metrics import METRICS, Metrics
from .signals import BALANCE_UPDATED, BalanceSignal

log = logging.getLogger(__name__)


class SessionLedgerView:
    def __init__(
        self,
        ledger: Ledger,
        account: Optional[str] = None,
        *,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        signal: BalanceSignal = BALANCE_UPDATED,
        metrics: Metrics = METRICS,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        self.ledger = ledger
        self.account = account if account is not None else ledger.account
        self.poll_interval_s = poll_interval_s
        self.signal = signal
        self.metrics = metrics
        self.balance: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def refresh(self) -> int:
        """Read the balance; on failure keep (and return) the previous value."""
        if not self.account:
            return self.balance or 0
        try:
            self.balance = int(await self.ledger.balance_of(self.account))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.metrics.record_refresh_failure()
            log.warning("balance refresh failed for %s: %s", self.account, e)
        return self.balance or 0

    def available(self, pending_spent: int = 0) -> int:
        """
        Last known balance minus value locked by unsettled moves.

        Negative when the ledger balance dropped below the locked amount.
        """
        return (self.balance or 0) - pending_spent

    # ---- background polling -------------------------------------------------

    async def _on_signal(self, account: Optional[str]) -> None:
        if account is None or self.account is None or account.lower() == self.account.lower():
            await self.refresh()

    async def _poll_loop(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.poll_interval_s)

    def start(self) -> None:
        """Begin polling and listening for balance updates (requires a running loop)."""
        if self._task is not None:
            return
        self._unsubscribe = self.signal.subscribe(self._on_signal)
        self._task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def running(self) -> bool:
        return self._task is not None

    async def __aenter__(self) -> "SessionLedgerView":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


__all__ = ["SessionLedgerView"]
