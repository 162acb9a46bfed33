from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..commit_reveal.commit import commitment_of

"""
Core typed primitives for the session engine.

These are intentionally minimal so they can be shared across submodules
(state machine, persistence, ledger adapters, CLI and tests).

Types provided:
  • SessionStatus — lifecycle states of a session
  • Session       — the live session owned by the state machine
  • SessionRecord — what is persisted for crash/reload recovery
  • MoveResult    — the locally decided outcome of one play()
  • GamePlayed    — ledger event emitted per settled move
  • TxReceipt     — confirmed ledger transaction
  • Settlement    — result of a successful settle()
"""

_HASH32 = 32


def _require_len(name: str, b: bytes, n: int) -> None:
    if len(b) != n:
        raise ValueError(f"{name} must be exactly {n} bytes (got {len(b)})")


def _require_nonneg(name: str, v: int) -> None:
    if v < 0:
        raise ValueError(f"{name} must be non-negative (got {v})")


class SessionStatus(str, Enum):
    IDLE = "idle"
    AWAITING_FUNDS = "awaiting_funds"
    COMMITTING = "committing"
    COMMITTED = "committed"
    PLAYING = "playing"
    BUSTED = "busted"
    SETTLING = "settling"
    SETTLED = "settled"
    RECOVERY_NEEDED = "recovery_needed"


# States in which the ledger holds a live commitment for the account.
LIVE_STATUSES = frozenset(
    {SessionStatus.COMMITTED, SessionStatus.PLAYING, SessionStatus.BUSTED}
)
PLAYABLE_STATUSES = frozenset({SessionStatus.COMMITTED, SessionStatus.PLAYING})
SETTLEABLE_STATUSES = frozenset({SessionStatus.PLAYING, SessionStatus.BUSTED})


# ---- Session -----------------------------------------------------------------


@dataclass
class Session:
    """
    One player's round against the house.

    Fields:
      account                   — player account (as connected)
      status                    — lifecycle state
      user_secret               — 32 random bytes, never transmitted before settle
      user_commitment           — Keccak-256(user_secret), sent to the ledger
      captured_house_commitment — house commitment at commit time
      moves                     — wagers in play order (append-only)
      total_gain                — projected gross return of won moves (display only)
    """

    account: str
    status: SessionStatus = SessionStatus.IDLE
    user_secret: Optional[bytes] = None
    user_commitment: Optional[bytes] = None
    captured_house_commitment: Optional[bytes] = None
    moves: List[int] = field(default_factory=list)
    total_gain: int = 0

    @property
    def pending_spent(self) -> int:
        """Value locked against the ledger balance by unsettled moves."""
        return sum(self.moves)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def bind(self, user_secret: bytes, house_commitment: Optional[bytes]) -> None:
        """Attach the session secret and the captured house commitment."""
        _require_len("user_secret", user_secret, _HASH32)
        self.user_secret = bytes(user_secret)
        self.user_commitment = commitment_of(user_secret)
        self.captured_house_commitment = (
            bytes(house_commitment) if house_commitment is not None else None
        )

    def record(self) -> "SessionRecord":
        if self.user_secret is None:
            raise ValueError("session has no secret to persist")
        return SessionRecord(
            user_secret=self.user_secret,
            house_commitment=self.captured_house_commitment,
        )


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    Persisted recovery record for an account.

    Fields:
      user_secret      — the session secret (32 bytes)
      house_commitment — house commitment captured at commit time, if known
    """

    user_secret: bytes
    house_commitment: Optional[bytes] = None

    def __post_init__(self) -> None:  # type: ignore[override]
        if not isinstance(self.user_secret, (bytes, bytearray)):
            raise TypeError("user_secret must be bytes")
        _require_len("user_secret", self.user_secret, _HASH32)
        if self.house_commitment is not None:
            if not isinstance(self.house_commitment, (bytes, bytearray)):
                raise TypeError("house_commitment must be bytes")
            _require_len("house_commitment", self.house_commitment, _HASH32)

    @property
    def user_commitment(self) -> bytes:
        return commitment_of(self.user_secret)


# ---- Moves & ledger results ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class MoveResult:
    """Outcome of one play() as predicted locally."""

    index: int
    wager: int
    win: bool
    pending_spent: int


@dataclass(frozen=True, slots=True)
class GamePlayed:
    """Ledger event `GamePlayed(account, gameId, wager, payout, data)`."""

    account: str
    game_id: int
    wager: int
    payout: int
    data: bytes = b""

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_nonneg("wager", self.wager)
        _require_nonneg("payout", self.payout)


@dataclass(frozen=True, slots=True)
class TxReceipt:
    """
    A confirmed ledger transaction.

    `payout` is set only when the ledger returns it directly; otherwise the
    realized payout is recovered from the `GamePlayed` events.
    """

    tx_hash: str
    events: Tuple[GamePlayed, ...] = ()
    payout: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Settlement:
    """Result of a successful settle()."""

    account: str
    game_id: int
    moves: Tuple[int, ...]
    payout: int
    receipt: TxReceipt

    @property
    def wagered(self) -> int:
        return sum(self.moves)

    @property
    def net(self) -> int:
        return self.payout - self.wagered


__all__ = [
    "SessionStatus",
    "LIVE_STATUSES",
    "PLAYABLE_STATUSES",
    "SETTLEABLE_STATUSES",
    "Session",
    "SessionRecord",
    "MoveResult",
    "GamePlayed",
    "TxReceipt",
    "Settlement",
]
