from __future__ import annotations

import asyncio

import pytest

from fairplay.commit_reveal.commit import commitment_of
from fairplay.errors import (
    ConnectivityError,
    HouseCommitmentMismatch,
    HouseCommitmentUnset,
    InsufficientFunds,
    InvalidTransition,
    SessionAlreadyActive,
    SessionBusy,
    TransactionRejected,
)
from fairplay.ledger.memory import InMemoryHouse
from fairplay.types.core import SessionRecord, SessionStatus

from .conftest import ACCOUNT, HOUSE_SEED, SpyLedger, find_secret

WIN_WIN_LOSS = (True, True, False)


class MutableHouseSecret:
    def __init__(self, secret: bytes) -> None:
        self.secret = secret

    def house_secret(self) -> bytes:
        return self.secret


@pytest.mark.asyncio
async def test_full_session_win_win_loss_settles_all_moves_in_order(make_machine, ledger, house, store):
    secret = find_secret(WIN_WIN_LOSS)
    m = make_machine(secret=secret)

    await m.start()
    assert m.status is SessionStatus.COMMITTED
    assert ledger.calls_to("user_commit") == [(commitment_of(secret),)]
    assert house.commitments[ACCOUNT.lower()] == commitment_of(secret)

    r0 = m.play(10)
    assert (r0.index, r0.win, r0.pending_spent) == (0, True, 10)
    assert m.status is SessionStatus.PLAYING
    r1 = m.play(10)
    assert (r1.index, r1.win, r1.pending_spent) == (1, True, 20)
    r2 = m.play(10)
    assert (r2.index, r2.win, r2.pending_spent) == (2, False, 30)
    assert m.status is SessionStatus.BUSTED
    assert m.available == 70
    assert m.session.total_gain == 40

    settlement = await m.settle()

    assert ledger.calls_to("settle_batch") == [(2, [10, 10, 10], secret, HOUSE_SEED)]
    assert settlement.moves == (10, 10, 10)
    assert settlement.payout == 40
    assert settlement.net == 10
    assert m.status is SessionStatus.IDLE
    assert m.session.moves == []
    assert m.session.pending_spent == 0
    assert store.get(ACCOUNT) is None
    assert m.balance == 110
    assert house.balance(ACCOUNT) == 110


@pytest.mark.asyncio
async def test_secret_is_persisted_before_user_commit(make_machine, ledger, store):
    seen = []
    ledger.hooks["user_commit"] = lambda c: seen.append(store.get(ACCOUNT))
    secret = find_secret(())
    m = make_machine(secret=secret)

    await m.start()

    assert seen and seen[0] is not None
    assert seen[0].user_secret == secret
    assert seen[0].house_commitment == commitment_of(HOUSE_SEED)


@pytest.mark.asyncio
async def test_start_with_insufficient_balance_awaits_funds(make_machine, ledger, house, store):
    house.balances[ACCOUNT.lower()] = 5
    m = make_machine()

    with pytest.raises(InsufficientFunds) as ei:
        await m.start()

    assert (ei.value.required, ei.value.available) == (10, 5)
    assert m.status is SessionStatus.AWAITING_FUNDS
    assert "user_commit" not in ledger.names()
    assert store.get(ACCOUNT) is None


@pytest.mark.asyncio
async def test_start_without_house_commitment_is_fatal(make_machine, ledger, house, store):
    house.house_commitment = b"\x00" * 32
    m = make_machine()

    with pytest.raises(HouseCommitmentUnset):
        await m.start()

    assert m.status is SessionStatus.IDLE
    assert "user_commit" not in ledger.names()
    assert store.get(ACCOUNT) is None


@pytest.mark.asyncio
async def test_start_while_committed_is_rejected_locally(make_machine, ledger):
    m = make_machine()
    await m.start()

    with pytest.raises(SessionAlreadyActive):
        await m.start()

    assert len(ledger.calls_to("user_commit")) == 1
    assert m.status is SessionStatus.COMMITTED


@pytest.mark.asyncio
async def test_start_while_busted_is_rejected(make_machine):
    m = make_machine(secret=find_secret((False,)))
    await m.start()
    m.play()
    assert m.status is SessionStatus.BUSTED

    with pytest.raises(SessionAlreadyActive):
        await m.start()


@pytest.mark.asyncio
async def test_ledger_active_session_moves_to_recovery_needed(make_machine, house, store):
    house.commitments[ACCOUNT.lower()] = commitment_of(b"\x01" * 32)
    m = make_machine()

    with pytest.raises(SessionAlreadyActive) as ei:
        await m.start()

    assert ei.value.recoverable is False
    assert m.status is SessionStatus.RECOVERY_NEEDED
    assert store.get(ACCOUNT) is None


@pytest.mark.asyncio
async def test_definite_rejection_drops_record_and_reraises(make_machine, ledger, store):
    ledger.fail_before["user_commit"] = TransactionRejected("PAUSED", action="user_commit")
    m = make_machine()

    with pytest.raises(TransactionRejected) as ei:
        await m.start()

    assert ei.value.reason == "PAUSED"
    assert m.status is SessionStatus.IDLE
    assert store.get(ACCOUNT) is None


@pytest.mark.asyncio
async def test_unknown_commit_outcome_keeps_record(make_machine, ledger, store):
    ledger.fail_after["user_commit"] = ConnectionError("socket closed")
    secret = find_secret(())
    m = make_machine(secret=secret)

    with pytest.raises(ConnectionError):
        await m.start()

    assert m.status is SessionStatus.RECOVERY_NEEDED
    assert store.get(ACCOUNT).user_secret == secret


@pytest.mark.asyncio
async def test_persisted_record_blocks_new_secret(make_machine, ledger, store):
    store.put(ACCOUNT, SessionRecord(user_secret=b"\x02" * 32))
    m = make_machine()
    assert m.status is SessionStatus.RECOVERY_NEEDED

    with pytest.raises(SessionAlreadyActive) as ei:
        await m.start()

    assert ei.value.recoverable is True
    assert "user_commit" not in ledger.names()
    assert store.get(ACCOUNT).user_secret == b"\x02" * 32


def test_play_before_start_is_invalid(make_machine):
    m = make_machine()
    with pytest.raises(InvalidTransition):
        m.play()


@pytest.mark.asyncio
async def test_play_after_bust_is_invalid(make_machine):
    m = make_machine(secret=find_secret((False,)))
    await m.start()
    m.play()

    with pytest.raises(InvalidTransition):
        m.play()
    assert m.session.moves == [10]


@pytest.mark.asyncio
async def test_play_cannot_exceed_available_balance(make_machine, ledger):
    m = make_machine(secret=find_secret((True,)))
    await m.start()
    m.play(60)

    with pytest.raises(InsufficientFunds) as ei:
        m.play(50)

    assert ei.value.available == 40
    assert m.session.moves == [60]
    assert m.session.pending_spent == 60
    assert "settle_batch" not in ledger.names()


@pytest.mark.asyncio
async def test_available_goes_negative_when_balance_drops_below_locked(make_machine, house):
    m = make_machine(secret=find_secret((True, True)))
    await m.start()
    m.play()
    m.play()
    house.balances[ACCOUNT.lower()] = 15

    await m.view.refresh()

    assert m.balance == 15
    assert m.session.pending_spent == 20
    assert m.available == -5
    with pytest.raises(InsufficientFunds) as ei:
        m.play(1)
    assert ei.value.available == -5
    assert m.session.moves == [10, 10]


@pytest.mark.asyncio
async def test_play_makes_no_ledger_calls(make_machine, ledger):
    m = make_machine(secret=find_secret((True, True)))
    await m.start()
    before = len(ledger.calls)

    m.play()
    m.play()

    assert len(ledger.calls) == before


@pytest.mark.asyncio
async def test_settle_with_no_moves_only_refreshes(make_machine, ledger):
    m = make_machine()
    await m.start()

    assert await m.settle() is None
    assert "settle_batch" not in ledger.names()
    assert m.status is SessionStatus.COMMITTED


@pytest.mark.asyncio
async def test_settle_refuses_rotated_house_secret(make_machine, ledger, store):
    house_src = MutableHouseSecret(HOUSE_SEED)
    m = make_machine(secret=find_secret((True,)), house=house_src)
    await m.start()
    m.play()
    house_src.secret = b"rotatedSeed"

    with pytest.raises(HouseCommitmentMismatch):
        await m.settle()

    assert "settle_batch" not in ledger.names()
    assert m.status is SessionStatus.PLAYING
    assert store.get(ACCOUNT) is not None


@pytest.mark.asyncio
async def test_settle_rejection_restores_status_and_keeps_record(make_machine, ledger, store):
    ledger.fail_before["settle_batch"] = TransactionRejected("PAUSED", action="settle_batch")
    m = make_machine(secret=find_secret((False,)))
    await m.start()
    m.play()

    with pytest.raises(TransactionRejected):
        await m.settle()

    assert m.status is SessionStatus.BUSTED
    assert m.session.moves == [10]
    assert store.get(ACCOUNT) is not None


@pytest.mark.asyncio
async def test_settle_emits_balance_signal(make_machine, signal):
    got = []
    signal.subscribe(got.append)
    m = make_machine(secret=find_secret((False,)))
    await m.start()
    m.play()

    await m.settle()

    assert got == [ACCOUNT]


@pytest.mark.asyncio
async def test_total_gain_uses_edge_and_fee(house, store, signal, metrics, make_machine):
    house.edge_bps = 100
    house.fee_bps = 50
    m = make_machine(secret=find_secret((True,)))
    assert await m.refresh_rates() == (100, 50)
    await m.start()

    m.play(10)

    # gross 20, after edge 19 (floor 19.8), fee 0 (floor 0.095)
    assert m.session.total_gain == 19


@pytest.mark.asyncio
async def test_refresh_rates_keeps_previous_values_on_failure(make_machine, ledger, house):
    house.edge_bps = 200
    m = make_machine()
    await m.refresh_rates()
    ledger.fail_before["house_edge_bps"] = RuntimeError("rpc down")

    assert await m.refresh_rates() == (200, 0)


@pytest.mark.asyncio
async def test_operations_are_exclusive_while_commit_outstanding(make_machine, ledger):
    ledger.gate["user_commit"] = asyncio.Event()
    m = make_machine()

    task = asyncio.create_task(m.start())
    while "user_commit" not in ledger.names():
        await asyncio.sleep(0)
    assert m.status is SessionStatus.COMMITTING

    with pytest.raises(SessionBusy):
        await m.start()
    with pytest.raises(SessionBusy):
        m.play()
    with pytest.raises(SessionBusy):
        await m.settle()

    ledger.gate["user_commit"].set()
    await task
    assert m.status is SessionStatus.COMMITTED


@pytest.mark.asyncio
async def test_no_connected_account_raises_connectivity_error(store, signal, metrics, make_machine):
    disconnected = SpyLedger(InMemoryHouse().connect(None))
    m = make_machine(ledger_override=disconnected)

    with pytest.raises(ConnectivityError):
        await m.start()
    with pytest.raises(ConnectivityError):
        m.play()


@pytest.mark.asyncio
async def test_reset_forget_drops_record(make_machine, store):
    m = make_machine()
    await m.start()

    m.reset(forget=True)

    assert m.status is SessionStatus.IDLE
    assert store.get(ACCOUNT) is None
