"""Shared fixtures for the session engine tests.

Provides a minimal asyncio runner so tests marked with
``@pytest.mark.asyncio`` execute without external plugins, plus an
in-process house, a call-recording ledger and a machine factory.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import structlog
from prometheus_client import CollectorRegistry
from Crypto.Hash import keccak

from fairplay.commit_reveal.house import StaticHouseSecret
from fairplay.ledger.memory import InMemoryHouse, InMemoryLedger
from fairplay.metrics import Metrics
from fairplay.session.machine import SessionStateMachine
from fairplay.session.persistence import KeyValueSessionStore
from fairplay.session.signals import BalanceSignal
from fairplay.session.view import SessionLedgerView
from fairplay.store.memory import MemoryKeyValue

ACCOUNT = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
OPERATOR = "0x" + "00" * 19 + "01"
HOUSE_SEED = b"houseSeed"


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - plugin hook
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:  # pragma: no cover - plugin hook
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if asyncio.iscoroutinefunction(test_func):
        argnames = getattr(pyfuncitem, "_fixtureinfo", None)
        wanted = set(getattr(argnames, "argnames", []) or [])
        kwargs = {k: v for k, v in pyfuncitem.funcargs.items() if k in wanted}
        asyncio.run(test_func(**kwargs))
        return True
    return None


# ---------------------------------------------------------------------------
# Reference evaluator (hand-rolled ABI head/tail layout + Keccak-256)
# ---------------------------------------------------------------------------


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def _word(n: int) -> bytes:
    return n.to_bytes(32, "big")


def _tail(b: bytes) -> bytes:
    pad = (-len(b)) % 32
    return _word(len(b)) + b + b"\x00" * pad


def reference_encoding(user: bytes, house: bytes, account: str, index: int) -> bytes:
    t1 = _tail(user)
    t2 = _tail(house)
    head = (
        _word(4 * 32)
        + _word(4 * 32 + len(t1))
        + b"\x00" * 12
        + bytes.fromhex(account[2:])
        + _word(index)
    )
    return head + t1 + t2


def reference_win(user: bytes, house: bytes, account: str, index: int) -> bool:
    return keccak256(reference_encoding(user, house, account, index))[31] % 2 == 0


def find_secret(pattern: Tuple[bool, ...], house: bytes = HOUSE_SEED, account: str = ACCOUNT) -> bytes:
    """First deterministic candidate secret whose outcomes start with `pattern`."""
    for i in range(10_000):
        candidate = keccak256(b"candidate:%d" % i)
        if all(reference_win(candidate, house, account, j) == want for j, want in enumerate(pattern)):
            return candidate
    raise AssertionError(f"no candidate secret for {pattern}")


# ---------------------------------------------------------------------------
# Ledger spy
# ---------------------------------------------------------------------------


class SpyLedger:
    """Wraps an InMemoryLedger, recording calls and injecting failures.

    ``fail_before[name]`` raises before the inner call; ``fail_after[name]``
    performs the inner call and then raises (an unknown-outcome transport
    failure). ``gate[name]`` is awaited before the call proceeds.
    """

    def __init__(self, inner: InMemoryLedger) -> None:
        self.inner = inner
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_before: Dict[str, BaseException] = {}
        self.fail_after: Dict[str, BaseException] = {}
        self.gate: Dict[str, asyncio.Event] = {}
        self.hooks: Dict[str, Callable[..., None]] = {}

    @property
    def account(self) -> Optional[str]:
        return self.inner.account

    def names(self) -> List[str]:
        return [n for n, _ in self.calls]

    def calls_to(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for n, args in self.calls if n == name]

    async def _call(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if name in self.hooks:
            self.hooks[name](*args)
        if name in self.gate:
            await self.gate[name].wait()
        if name in self.fail_before:
            raise self.fail_before[name]
        res = await getattr(self.inner, name)(*args)
        if name in self.fail_after:
            raise self.fail_after[name]
        return res

    async def balance_of(self, account):
        return await self._call("balance_of", account)

    async def deposit(self, amount):
        return await self._call("deposit", amount)

    async def withdraw(self, amount):
        return await self._call("withdraw", amount)

    async def withdraw_all(self):
        return await self._call("withdraw_all")

    async def user_commit(self, commitment):
        return await self._call("user_commit", commitment)

    async def user_commitment(self, account):
        return await self._call("user_commitment", account)

    async def current_house_commitment(self):
        return await self._call("current_house_commitment")

    async def settle_batch(self, game_id, wagers, user_secret, house_secret):
        return await self._call("settle_batch", game_id, wagers, user_secret, house_secret)

    async def house_edge_bps(self):
        return await self._call("house_edge_bps")

    async def fee_bps(self):
        return await self._call("fee_bps")

    async def set_current_house_commitment(self, commitment):
        return await self._call("set_current_house_commitment", commitment)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def house() -> InMemoryHouse:
    h = InMemoryHouse(owner=OPERATOR)
    h.publish_house_seed(HOUSE_SEED)
    h.credit(ACCOUNT, 100)
    return h


@pytest.fixture
def ledger(house: InMemoryHouse) -> SpyLedger:
    return SpyLedger(house.connect(ACCOUNT))


@pytest.fixture
def kv() -> MemoryKeyValue:
    return MemoryKeyValue()


@pytest.fixture
def store(kv: MemoryKeyValue) -> KeyValueSessionStore:
    return KeyValueSessionStore(kv, game="crash")


@pytest.fixture
def signal() -> BalanceSignal:
    return BalanceSignal()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics(registry=CollectorRegistry())


@pytest.fixture
def make_machine(ledger, store, signal, metrics):
    """Factory: make_machine(secret=..., house_secret=..., **overrides)."""

    def _make(
        *,
        secret: Optional[bytes] = None,
        house_secret: bytes = HOUSE_SEED,
        ledger_override=None,
        **kwargs: Any,
    ) -> SessionStateMachine:
        led = ledger_override if ledger_override is not None else ledger
        view = SessionLedgerView(led, signal=signal, metrics=metrics)
        factory_kwargs: Dict[str, Any] = {}
        if secret is not None:
            factory_kwargs["secret_factory"] = lambda: secret
        params: Dict[str, Any] = dict(
            store=store,
            house=StaticHouseSecret.from_bytes(house_secret),
            wager=10,
            view=view,
            signal=signal,
            metrics=metrics,
        )
        params.update(factory_kwargs)
        params.update(kwargs)
        return SessionStateMachine(led, **params)

    return _make


@pytest.fixture(autouse=True)
def _restore_logging():
    """CLI and logging tests reconfigure the root logger; put it back."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
