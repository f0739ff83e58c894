import json

import pytest

from analysis.models import AlertState
from storage import AlertStateStore

KEY = "polygon:0x8bc8e9f621ee8babda8dc0e6fc991aaf9bf8510b:LINK/USDC"


def test_missing_file_returns_default_state(tmp_path):
    store = AlertStateStore(tmp_path / "state.json")
    state = store.load(KEY)
    assert state == AlertState()
    assert state.is_initial


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = AlertStateStore(path)
    store.save(KEY, AlertState(last_sent_at=1_700_000_000, last_sent_profit_pct=1.23, last_buy_price=14.0))

    loaded = AlertStateStore(path).load(KEY)
    assert loaded.last_sent_at == 1_700_000_000
    assert loaded.last_sent_profit_pct == 1.23
    assert loaded.last_buy_price == 14.0
    assert loaded.last_sell_price is None

    document = json.loads(path.read_text())
    assert document["pairs"][KEY]["lastSentAt"] == 1_700_000_000
    assert document["pairs"][KEY]["lastSentProfitPct"] == 1.23


@pytest.mark.parametrize("content", ["", "{not json", "[1, 2, 3]", '{"pairs": "oops"}'])
def test_corrupt_file_is_treated_as_no_prior_state(tmp_path, content):
    path = tmp_path / "state.json"
    path.write_text(content)
    assert AlertStateStore(path).load(KEY) == AlertState()


def test_non_utf8_file_is_treated_as_no_prior_state(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe{garbage")
    store = AlertStateStore(path)

    assert store.load(KEY) == AlertState()
    assert store.load_all() == {}

    store.save(KEY, AlertState(last_sent_at=1, last_sent_profit_pct=1.1))
    assert store.load(KEY).last_sent_profit_pct == 1.1


def test_malformed_record_is_ignored(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"pairs": {KEY: {"lastSentAt": "yesterday", "lastSentProfitPct": 2}}}))
    assert AlertStateStore(path).load(KEY) == AlertState()


def test_legacy_field_names_are_read(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"pairs": {KEY: {"lastSentAt": 10, "lastSentProfit": 1.7, "lastSushi": 14.01, "lastOdos": 14.25}}}))
    state = AlertStateStore(path).load(KEY)
    assert state.last_sent_at == 10
    assert state.last_sent_profit_pct == 1.7
    assert state.last_buy_price == 14.01
    assert state.last_sell_price == 14.25


def test_save_keeps_other_pairs_and_meta(tmp_path):
    path = tmp_path / "state.json"
    store = AlertStateStore(path)
    store.save("other", AlertState(last_sent_at=5, last_sent_profit_pct=2.0))
    store.save_meta("startedAt", 42)
    store.save(KEY, AlertState(last_sent_at=6, last_sent_profit_pct=3.0))

    assert set(store.load_all()) == {"other", KEY}
    assert store.load_meta("startedAt") == 42


def test_save_overwrites_corrupt_file(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("garbage")
    store = AlertStateStore(path)
    store.save(KEY, AlertState(last_sent_at=1, last_sent_profit_pct=1.1))
    assert store.load(KEY).last_sent_profit_pct == 1.1


def test_failed_write_leaves_previous_state_intact(tmp_path, monkeypatch):
    path = tmp_path / "state.json"
    store = AlertStateStore(path)
    store.save(KEY, AlertState(last_sent_at=1, last_sent_profit_pct=1.1))

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("storage.state_store.os.replace", boom)
    with pytest.raises(OSError):
        store.save(KEY, AlertState(last_sent_at=2, last_sent_profit_pct=9.9))

    assert store.load(KEY).last_sent_profit_pct == 1.1
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


@pytest.mark.asyncio
async def test_async_wrappers(tmp_path):
    store = AlertStateStore(tmp_path / "state.json")
    await store.asave(KEY, AlertState(last_sent_at=3, last_sent_profit_pct=1.5))
    state = await store.aload(KEY)
    assert state.last_sent_profit_pct == 1.5
