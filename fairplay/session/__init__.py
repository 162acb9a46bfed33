"""
fairplay.session
================

The session engine proper:
    - machine.py      : `SessionStateMachine` (start / play / settle / recover).
    - view.py         : `SessionLedgerView`, the polled balance cache.
    - persistence.py  : `SessionStore` recovery records.
    - signals.py      : the process-wide balance-updated broadcast.
"""

from __future__ import annotations

from .machine import SessionStateMachine
from .persistence import KeyValueSessionStore, SessionStore
from .signals import BALANCE_UPDATED, BalanceSignal
from .view import SessionLedgerView

__all__ = [
    "SessionStateMachine",
    "SessionLedgerView",
    "SessionStore",
    "KeyValueSessionStore",
    "BalanceSignal",
    "BALANCE_UPDATED",
]
