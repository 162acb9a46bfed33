from __future__ import annotations

import pytest

from fairplay.errors import InvalidSecretFormat
from fairplay.session.persistence import KeyValueSessionStore
from fairplay.store import open_kv
from fairplay.store.memory import MemoryKeyValue
from fairplay.store.sqlite import SQLiteKeyValue
from fairplay.types.core import SessionRecord

from .conftest import ACCOUNT

SECRET = bytes(range(32))
HOUSE = bytes(range(32, 64))


def test_keys_use_game_namespace_and_lowercase_account():
    kv = MemoryKeyValue()
    store = KeyValueSessionStore(kv, game="crash")

    store.put(ACCOUNT, SessionRecord(user_secret=SECRET, house_commitment=HOUSE))

    lower = ACCOUNT.lower()
    assert kv.get(f"crash-commit-seed:{lower}".encode()) == ("0x" + SECRET.hex()).encode()
    assert kv.get(f"crash-session-house-commit:{lower}".encode()) == ("0x" + HOUSE.hex()).encode()
    assert len(kv) == 2


def test_checksummed_and_lowercase_accounts_share_a_record():
    store = KeyValueSessionStore(MemoryKeyValue())
    store.put(ACCOUNT, SessionRecord(user_secret=SECRET))

    assert store.get(ACCOUNT.lower()).user_secret == SECRET
    assert store.get(ACCOUNT.upper().replace("0X", "0x")).user_secret == SECRET


def test_remove_clears_both_keys():
    kv = MemoryKeyValue()
    store = KeyValueSessionStore(kv)
    store.put(ACCOUNT, SessionRecord(user_secret=SECRET, house_commitment=HOUSE))

    store.remove(ACCOUNT)

    assert store.get(ACCOUNT) is None
    assert len(kv) == 0


def test_games_do_not_share_records():
    kv = MemoryKeyValue()
    KeyValueSessionStore(kv, game="crash").put(ACCOUNT, SessionRecord(user_secret=SECRET))

    assert KeyValueSessionStore(kv, game="mines").get(ACCOUNT) is None


def test_record_without_house_commitment():
    store = KeyValueSessionStore(MemoryKeyValue())
    store.put(ACCOUNT, SessionRecord(user_secret=SECRET))

    rec = store.get(ACCOUNT)
    assert rec.house_commitment is None


def test_corrupt_seed_raises_invalid_format():
    kv = MemoryKeyValue()
    store = KeyValueSessionStore(kv)
    kv.put(store.seed_key(ACCOUNT).encode(), b"0xzz")

    with pytest.raises(InvalidSecretFormat):
        store.get(ACCOUNT)


def test_sqlite_backend_survives_reopen(tmp_path):
    path = str(tmp_path / "nested" / "sessions.db")
    kv = SQLiteKeyValue(path)
    KeyValueSessionStore(kv).put(ACCOUNT, SessionRecord(user_secret=SECRET, house_commitment=HOUSE))
    kv.close()

    with SQLiteKeyValue(path) as kv2:
        rec = KeyValueSessionStore(kv2).get(ACCOUNT)
        assert rec == SessionRecord(user_secret=SECRET, house_commitment=HOUSE)
        assert kv2.get(b"crash-session-house-commit:" + ACCOUNT.lower().encode()) == ("0x" + HOUSE.hex()).encode()


def test_open_kv_schemes(tmp_path):
    assert isinstance(open_kv("memory://"), MemoryKeyValue)
    kv = open_kv(f"sqlite://{tmp_path / 's.db'}")
    assert isinstance(kv, SQLiteKeyValue)
    kv.close()
    with pytest.raises(ValueError):
        open_kv("redis://localhost")
    with pytest.raises(ValueError):
        open_kv("no-scheme")


def test_session_record_validates_lengths():
    with pytest.raises(ValueError):
        SessionRecord(user_secret=b"\x00" * 31)
    with pytest.raises(ValueError):
        SessionRecord(user_secret=SECRET, house_commitment=b"\x00" * 5)
