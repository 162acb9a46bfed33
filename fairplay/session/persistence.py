"""
Recovery records for interrupted sessions.

A session secret is written here *before* the commitment transaction is sent,
so a crash, reload or transport failure between "commit submitted" and
"commit confirmed" never strands a live ledger session without the secret
needed to settle it.

Layout
------
Two entries per account, namespaced by game:

    {game}-commit-seed:{account}          -> 0x-hex session secret
    {game}-session-house-commit:{account} -> 0x-hex captured house commitment

The account is lower-cased so checksummed and plain addresses share a record.
Both entries are removed together after a successful settle.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..commit_reveal.commit import parse_secret
from ..constants import DEFAULT_GAME, KEY_COMMIT_SEED, KEY_HOUSE_COMMIT
from ..store import KeyValue
from ..types.core import SessionRecord
from ..utils.hexutil import from_hex, to_hex

log = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Repository for per-account recovery records."""

    def get(self, account: str) -> Optional[SessionRecord]: ...

    def put(self, account: str, record: SessionRecord) -> None: ...

    def remove(self, account: str) -> None: ...


def _norm_account(account: str) -> str:
    if not isinstance(account, str) or not account:
        raise ValueError("account must be a non-empty string")
    return account.lower()


class KeyValueSessionStore:
    """`SessionStore` over any byte-oriented `KeyValue` backend."""

    def __init__(self, kv: KeyValue, game: str = DEFAULT_GAME) -> None:
        self.kv = kv
        self.game = game

    # Key helpers

    def seed_key(self, account: str) -> str:
        return KEY_COMMIT_SEED.format(game=self.game, account=_norm_account(account))

    def house_key(self, account: str) -> str:
        return KEY_HOUSE_COMMIT.format(game=self.game, account=_norm_account(account))

    # Repository API

    def get(self, account: str) -> Optional[SessionRecord]:
        raw_seed = self.kv.get(self.seed_key(account).encode("utf-8"))
        if raw_seed is None:
            return None
        user_secret = parse_secret(raw_seed.decode("utf-8"))
        raw_house = self.kv.get(self.house_key(account).encode("utf-8"))
        house = from_hex(raw_house.decode("utf-8")) if raw_house else None
        return SessionRecord(user_secret=user_secret, house_commitment=house or None)

    def put(self, account: str, record: SessionRecord) -> None:
        self.kv.put(self.seed_key(account).encode("utf-8"), to_hex(record.user_secret).encode("utf-8"))
        if record.house_commitment is not None:
            self.kv.put(
                self.house_key(account).encode("utf-8"),
                to_hex(record.house_commitment).encode("utf-8"),
            )
        else:
            self.kv.delete(self.house_key(account).encode("utf-8"))
        log.debug("recovery record stored for %s", _norm_account(account))

    def remove(self, account: str) -> None:
        self.kv.delete(self.seed_key(account).encode("utf-8"))
        self.kv.delete(self.house_key(account).encode("utf-8"))
        log.debug("recovery record removed for %s", _norm_account(account))


__all__ = ["SessionStore", "KeyValueSessionStore"]
