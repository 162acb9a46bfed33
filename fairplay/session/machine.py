"""
Session state machine: start → play → settle, plus recovery.

One machine owns one account's `Session`. The lifecycle is

    IDLE ─start()─▶ COMMITTING ─▶ COMMITTED ─play()─▶ PLAYING ─┐
      ▲                 │                       │  (loss)      │
      │                 ▼                       ▼              │
      │          RECOVERY_NEEDED ◀─────────── BUSTED ◀─────────┘
      │                 │                       │
      │            recover()                 settle()
      └──────────── SETTLED ◀── SETTLING ◀──────┘

Rules the machine enforces:
- The session secret is persisted *before* `user_commit` is sent.
- No new secret is generated while a session is live (COMMITTED, PLAYING,
  BUSTED), pending recovery, or while a recovery record exists.
- `play()` never touches the network: the outcome is predicted locally with
  the same function the ledger evaluates at settlement.
- `settle()` refuses to reveal when the house secret no longer opens the
  commitment captured at commit time, and sends the full ordered move list in
  exactly one `settle_batch` call.
- No automatic retries. A definite ledger revert is surfaced as
  `TransactionRejected`; any other failure of a state-changing call leaves
  the session in a state `recover()` can resolve.
- Only one ledger operation may be outstanding at a time (`SessionBusy`).
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple

from ..commit_reveal.commit import commitment_hex, generate_secret, parse_secret
from ..commit_reveal.house import HouseSecretSource, StaticHouseSecret
from ..commit_reveal.outcome import move_outcome
from ..commit_reveal.verify import (
    is_unset,
    matches_commitment,
    normalize_commitment,
    verify_house_secret,
)
from ..config import FairplayConfig
from ..constants import DEFAULT_GAME, GAME_IDS
from ..errors import (
    ConnectivityError,
    HouseCommitmentMismatch,
    HouseCommitmentUnset,
    InsufficientFunds,
    InvalidSecretFormat,
    InvalidTransition,
    SessionAlreadyActive,
    SessionBusy,
    TransactionRejected,
    UserCommitmentMismatch,
)
from ..ledger import Ledger
from ..ledger.receipts import projected_payout, realized_payout
from ..metrics import METRICS, Metrics
from ..store import open_kv
from ..types.core import (
    LIVE_STATUSES,
    PLAYABLE_STATUSES,
    SETTLEABLE_STATUSES,
    MoveResult,
    Session,
    SessionRecord,
    SessionStatus,
    Settlement,
)
from ..utils.hexutil import to_hex
from .persistence import KeyValueSessionStore, SessionStore
from .signals import BALANCE_UPDATED, BalanceSignal
from .view import SessionLedgerView

log = logging.getLogger(__name__)

_START_BLOCKING = LIVE_STATUSES | {SessionStatus.RECOVERY_NEEDED}


class SessionStateMachine:
    """
    Drives one account's commit–reveal session against a signer-bound ledger.

    Args:
        ledger: Signer-bound `Ledger`.
        store: Repository for recovery records.
        house: Source of the house secret (see `fairplay.commit_reveal.house`).
        game: Game name; namespaces the recovery records.
        game_id: Ledger game id for `settle_batch` (derived from `game` if None).
        wager: Default wager for `start()`/`play()` when none is given.
        view: Balance view (one is created from `ledger` if omitted).
        signal: Balance-updated broadcast emitted after settlement.
        secret_factory: Session secret generator.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        store: SessionStore,
        house: HouseSecretSource,
        game: str = DEFAULT_GAME,
        game_id: Optional[int] = None,
        wager: int = FairplayConfig.wager,
        view: Optional[SessionLedgerView] = None,
        signal: BalanceSignal = BALANCE_UPDATED,
        metrics: Metrics = METRICS,
        secret_factory: Callable[[], bytes] = generate_secret,
    ) -> None:
        if wager <= 0:
            raise ValueError("wager must be > 0")
        self.ledger = ledger
        self.store = store
        self.house = house
        self.game = game
        self.game_id = game_id if game_id is not None else GAME_IDS[game]
        self.wager = wager
        self.signal = signal
        self.metrics = metrics
        self.view = view if view is not None else SessionLedgerView(ledger, signal=signal, metrics=metrics)
        self.secret_factory = secret_factory
        self.edge_bps = 0
        self.fee_bps = 0
        self._pending: Optional[str] = None
        self._unsettled: Optional[SessionStatus] = None

        account = ledger.account
        self.session = Session(account=account or "")
        if account and self._load_record(account) is not None:
            self.session.status = SessionStatus.RECOVERY_NEEDED
            log.info("recovery record present for %s; recover() required", account)

    @classmethod
    def from_config(
        cls,
        ledger: Ledger,
        config: FairplayConfig,
        *,
        store: Optional[SessionStore] = None,
        house: Optional[HouseSecretSource] = None,
        **kwargs,
    ) -> "SessionStateMachine":
        """Build a machine from `FairplayConfig` (store from `store_uri`, house from `house_seed`)."""
        config.validate()
        log.debug("session machine config: %s", config.to_dict())
        if house is None:
            if config.house_seed is None:
                raise ValueError("no house secret source: set house_seed or pass house=")
            house = StaticHouseSecret(config.house_seed)
        if store is None:
            store = KeyValueSessionStore(open_kv(config.store_uri), game=config.game)
        view = kwargs.pop("view", None) or SessionLedgerView(
            ledger,
            poll_interval_s=config.poll_interval_s,
            signal=kwargs.get("signal", BALANCE_UPDATED),
            metrics=kwargs.get("metrics", METRICS),
        )
        return cls(
            ledger,
            store=store,
            house=house,
            game=config.game,
            game_id=config.effective_game_id(),
            wager=config.wager,
            view=view,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def balance(self) -> Optional[int]:
        return self.view.balance

    @property
    def available(self) -> int:
        return self.view.available(self.session.pending_spent)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_account(self, action: str) -> str:
        account = self.ledger.account
        if not account:
            raise ConnectivityError(action)
        if self.session.account.lower() != account.lower():
            # Signer switched: the session belongs to the previous account.
            self.session = Session(account=account)
            self._unsettled = None
            self.view.account = account
            self.view.balance = None
            if self._load_record(account) is not None:
                self.session.status = SessionStatus.RECOVERY_NEEDED
        return account

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if self._pending is not None:
            raise SessionBusy(action, self._pending)
        self._pending = action
        try:
            yield
        finally:
            self._pending = None

    def _load_record(self, account: str) -> Optional[SessionRecord]:
        try:
            return self.store.get(account)
        except (InvalidSecretFormat, ValueError) as e:
            log.warning("unreadable recovery record for %s: %s", account, e)
            return None

    async def _capture_house_commitment(self) -> bytes:
        current = await self.ledger.current_house_commitment()
        if is_unset(current):
            raise HouseCommitmentUnset()
        return normalize_commitment(current)

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------

    async def start(self, wager: Optional[int] = None) -> Session:
        """
        Open a session: generate a secret, persist it, then commit its hash.

        Raises:
            SessionAlreadyActive: a session is live, pending recovery, or a
                recovery record exists for the account.
            InsufficientFunds: the spendable balance cannot cover `wager`.
            HouseCommitmentUnset: the ledger has no house commitment.
            TransactionRejected: the ledger reverted `user_commit`.
        """
        account = self._require_account("start")
        wager = self.wager if wager is None else wager
        if wager <= 0:
            raise ValueError("wager must be > 0")

        with self._exclusive("start"):
            status = self.session.status
            record = self._load_record(account)
            if status in _START_BLOCKING or record is not None:
                if status not in LIVE_STATUSES:
                    self.session.status = SessionStatus.RECOVERY_NEEDED
                self.metrics.record_start("already_active")
                raise SessionAlreadyActive(account, recoverable=status in LIVE_STATUSES or record is not None)

            self.session = Session(account=account)
            secret = self.secret_factory()

            await self.view.refresh()
            available = self.view.available(0)
            if available < wager:
                self.session.status = SessionStatus.AWAITING_FUNDS
                self.metrics.record_start("awaiting_funds")
                raise InsufficientFunds(required=wager, available=available)

            try:
                house_commitment = await self._capture_house_commitment()
            except HouseCommitmentUnset:
                self.session = Session(account=account)
                self.metrics.record_start("house_unset")
                raise

            self.session.bind(secret, house_commitment)
            self.store.put(account, self.session.record())
            self.session.status = SessionStatus.COMMITTING
            log.info("committing session for %s commitment=%s", account, to_hex(self.session.user_commitment))

            try:
                await self.ledger.user_commit(self.session.user_commitment)
            except TransactionRejected as e:
                self.store.remove(account)
                if e.is_active_session:
                    self.session = Session(account=account, status=SessionStatus.RECOVERY_NEEDED)
                    self.metrics.record_start("already_active")
                    log.warning("ledger reports an active session for %s", account)
                    raise SessionAlreadyActive(account, recoverable=False) from e
                self.session = Session(account=account)
                self.metrics.record_start("rejected")
                log.warning("user_commit rejected for %s: %s", account, e.reason)
                raise
            except (Exception, asyncio.CancelledError):
                # Outcome unknown: the record stays so recover() can resume.
                self.session.status = SessionStatus.RECOVERY_NEEDED
                self.metrics.record_start("error")
                log.exception("user_commit outcome unknown for %s", account)
                raise

            self.session.status = SessionStatus.COMMITTED
            self.metrics.record_start("committed")
            log.info("session committed for %s", account)
            return self.session

    # ------------------------------------------------------------------
    # play
    # ------------------------------------------------------------------

    def play(self, wager: Optional[int] = None) -> MoveResult:
        """Append one move and predict its outcome locally. No ledger call."""
        account = self._require_account("play")
        if self._pending is not None:
            raise SessionBusy("play", self._pending)
        if self.session.status not in PLAYABLE_STATUSES:
            raise InvalidTransition("play", self.session.status.value)
        wager = self.wager if wager is None else wager
        if wager <= 0:
            raise ValueError("wager must be > 0")
        available = self.available
        if wager > available:
            raise InsufficientFunds(required=wager, available=available)

        house_secret = self.house.house_secret()
        self.session.moves.append(wager)
        index = len(self.session.moves) - 1
        win = move_outcome(self.session.user_secret, house_secret, account, index)

        if win:
            self.session.status = SessionStatus.PLAYING
            self.session.total_gain += projected_payout(wager, 1, self.edge_bps, self.fee_bps)
        else:
            self.session.status = SessionStatus.BUSTED
        self.metrics.record_move(win=win)
        log.debug("move %d wager=%d win=%s", index, wager, win)
        return MoveResult(index=index, wager=wager, win=win, pending_spent=self.session.pending_spent)

    # ------------------------------------------------------------------
    # settle
    # ------------------------------------------------------------------

    async def settle(self) -> Optional[Settlement]:
        """
        Reveal both secrets and settle every move in one ledger call.

        Returns None (after a balance refresh) when there is nothing to settle.

        Raises:
            HouseCommitmentMismatch: the house secret no longer opens the
                captured commitment; nothing is sent to the ledger.
            TransactionRejected: the ledger reverted `settle_batch`; the
                previous status and the moves are kept.

        Any other `settle_batch` failure leaves the outcome unknown: the
        session moves to RECOVERY_NEEDED with its moves and record intact,
        and `recover()` decides from the ledger whether the batch landed.
        """
        account = self._require_account("settle")
        with self._exclusive("settle"):
            if not self.session.moves:
                await self.view.refresh()
                return None
            if self.session.status not in SETTLEABLE_STATUSES:
                raise InvalidTransition("settle", self.session.status.value)

            house_secret = self.house.house_secret()
            try:
                verify_house_secret(self.session.captured_house_commitment, house_secret)
            except HouseCommitmentMismatch:
                self.metrics.record_settle("house_mismatch")
                log.error("house secret does not open the captured commitment for %s", account)
                raise

            previous = self.session.status
            moves = tuple(self.session.moves)
            self.session.status = SessionStatus.SETTLING
            try:
                with self.metrics.settle_timer():
                    receipt = await self.ledger.settle_batch(
                        self.game_id, list(moves), self.session.user_secret, house_secret
                    )
            except TransactionRejected as e:
                self.session.status = previous
                self.metrics.record_settle("rejected")
                log.warning("settle_batch rejected for %s: %s", account, e.reason)
                raise
            except (Exception, asyncio.CancelledError):
                # Outcome unknown: the batch may have landed. Moves stay for recover().
                self._unsettled = previous
                self.session.status = SessionStatus.RECOVERY_NEEDED
                self.metrics.record_settle("error")
                log.exception("settle_batch failed for %s; recover() required", account)
                raise

            payout = realized_payout(receipt, account, self.game_id)
            self.store.remove(account)
            self.session.status = SessionStatus.SETTLED
            settlement = Settlement(
                account=account,
                game_id=self.game_id,
                moves=moves,
                payout=payout,
                receipt=receipt,
            )
            self.session = Session(account=account)
            self.metrics.record_settle("settled")
            log.info("settled %d moves for %s payout=%d tx=%s", len(moves), account, payout, receipt.tx_hash)

            await self.view.refresh()
            await self.signal.emit(account)
            return settlement

    # ------------------------------------------------------------------
    # recover
    # ------------------------------------------------------------------

    async def recover(self, supplied_secret: Optional[str] = None) -> SessionStatus:
        """
        Reconcile the local state with the ledger's active commitment.

        - A persisted secret matching the ledger commitment resumes the session.
        - A persisted record with no live ledger session is stale and removed.
        - A live ledger session without a usable local secret needs
          `supplied_secret` (hex); otherwise `SessionAlreadyActive` is raised.
        - After an interrupted `settle()`, a cleared ledger commitment means
          the batch landed (back to IDLE); a live one restores PLAYING/BUSTED
          with the unsettled moves.
        """
        account = self._require_account("recover")
        with self._exclusive("recover"):
            if self.session.status is SessionStatus.RECOVERY_NEEDED and self.session.moves:
                return await self._recover_unsettled(account)
            if self.session.status in LIVE_STATUSES:
                raise InvalidTransition("recover", self.session.status.value)

            on_ledger = await self.ledger.user_commitment(account)
            live = not is_unset(on_ledger)
            record = self._load_record(account)

            if supplied_secret is None and record is not None:
                if not live:
                    self.store.remove(account)
                    self.session = Session(account=account)
                    self.metrics.record_recover("stale")
                    log.info("removed stale recovery record for %s", account)
                    return self.session.status
                if matches_commitment(record.user_secret, on_ledger):
                    house = record.house_commitment
                    if house is None:
                        house = await self._capture_house_commitment()
                    self.session = Session(account=account)
                    self.session.bind(record.user_secret, house)
                    self.session.status = SessionStatus.COMMITTED
                    await self.view.refresh()
                    self.metrics.record_recover("resumed")
                    log.info("resumed session for %s from recovery record", account)
                    return self.session.status
                log.warning("recovery record for %s does not match the ledger commitment", account)
                self.store.remove(account)

            if not live:
                self.session = Session(account=account)
                self.metrics.record_recover("nothing")
                return self.session.status

            if supplied_secret is None:
                self.session = Session(account=account, status=SessionStatus.RECOVERY_NEEDED)
                self.metrics.record_recover("needs_secret")
                raise SessionAlreadyActive(account, recoverable=False)

            try:
                secret = parse_secret(supplied_secret)
            except InvalidSecretFormat:
                self.metrics.record_recover("invalid")
                raise
            if not matches_commitment(secret, on_ledger):
                self.metrics.record_recover("invalid")
                raise UserCommitmentMismatch(
                    account=account,
                    expected_hex=to_hex(normalize_commitment(on_ledger)),
                    got_hex=commitment_hex(secret),
                )

            house = await self._capture_house_commitment()
            self.session = Session(account=account)
            self.session.bind(secret, house)
            self.store.put(account, self.session.record())
            self.session.status = SessionStatus.COMMITTED
            await self.view.refresh()
            self.metrics.record_recover("manual")
            log.info("resumed session for %s from supplied secret", account)
            return self.session.status

    async def _recover_unsettled(self, account: str) -> SessionStatus:
        on_ledger = await self.ledger.user_commitment(account)
        if is_unset(on_ledger) or not matches_commitment(self.session.user_secret, on_ledger):
            moves = len(self.session.moves)
            self.store.remove(account)
            self.session = Session(account=account)
            self._unsettled = None
            self.metrics.record_recover("settled")
            log.info("interrupted settle of %d moves for %s had landed", moves, account)
            await self.view.refresh()
            await self.signal.emit(account)
            return self.session.status

        restored = self._unsettled if self._unsettled is not None else SessionStatus.BUSTED
        self.session.status = restored
        self._unsettled = None
        await self.view.refresh()
        self.metrics.record_recover("resumed")
        log.info("settle for %s did not land; %d moves still unsettled", account, len(self.session.moves))
        return restored

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def reset(self, *, forget: bool = False) -> None:
        """Return to IDLE. With `forget`, also drop the recovery record."""
        if self._pending is not None:
            raise SessionBusy("reset", self._pending)
        account = self.ledger.account or self.session.account
        if forget and account:
            self.store.remove(account)
        self.session = Session(account=account or "")
        self._unsettled = None

    async def refresh_rates(self) -> Tuple[int, int]:
        """Read house edge and fee (bps) for payout projection; failures keep old values."""
        try:
            self.edge_bps = int(await self.ledger.house_edge_bps())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("house_edge_bps read failed: %s", e)
        try:
            self.fee_bps = int(await self.ledger.fee_bps())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("fee_bps read failed: %s", e)
        return self.edge_bps, self.fee_bps


__all__ = ["SessionStateMachine"]
