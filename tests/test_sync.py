"""Tests for sign-in reconciliation and the recovery cache."""

import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from indicharts.db.store import DataStore
from indicharts.errors import BackendError
from indicharts.models import AlertEvent, AlertRule, AlertState, DeviceInfo, WatchlistItem
from indicharts.sync import BaseBackend, RecoveryCache, SyncReconciler

T = datetime(2024, 7, 1, 10, 0)


class FakeBackend(BaseBackend):
    """In-memory backend that can be told to fail."""

    def __init__(self, rules=None, watchlist=None, fail=()):
        self.rules = rules or []
        self.watchlist = watchlist or []
        self.fail = set(fail)
        self.pushed: list[AlertRule] = []
        self.devices: list[DeviceInfo] = []
        self.next_id = 100

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise BackendError(f"{operation} unavailable")

    def fetch_rules(self, user_id):
        self._check("fetch_rules")
        return list(self.rules)

    def fetch_watchlist(self, user_id):
        self._check("fetch_watchlist")
        return list(self.watchlist)

    def push_rule(self, user_id, rule):
        self._check("push_rule")
        self.pushed.append(rule)
        self.next_id += 1
        return self.next_id

    def register_device(self, device):
        self._check("register_device")
        self.devices.append(device)


@pytest.fixture
def workspace():
    """Temporary store plus recovery cache."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = DataStore(Path(tmpdir) / "test.db")
        cache = RecoveryCache(Path(tmpdir) / "recovery.json")
        yield store, cache


def seed_local(store: DataStore) -> int:
    rule_id = store.save_rule(AlertRule(symbol="AAPL", timeframe="1d", description="anon"))
    store.save_state(AlertState(rule_id=rule_id, last_value=64.0, latches=[True, False]))
    store.append_event(AlertEvent(
        rule_id=rule_id, ts=T, value=71.0, level=70.0, side="cross_up", symbol="AAPL",
    ))
    store.add_to_watchlist("AAPL")
    return rule_id


def server_rules() -> list[AlertRule]:
    return [
        AlertRule(symbol="MSFT", timeframe="1h", remote_id=1),
        AlertRule(symbol="TSLA", timeframe="1d", remote_id=2, levels=[20.0, 80.0]),
    ]


class TestSignIn:
    def test_account_data_replaces_local(self, workspace):
        store, cache = workspace
        seed_local(store)
        backend = FakeBackend(server_rules(), [WatchlistItem(symbol="NVDA")])

        report = SyncReconciler(store, backend, cache).on_sign_in("user-1")

        assert report.ok
        assert report.snapshot_saved
        assert report.rules_replaced == 2
        assert report.watchlist_replaced == 1
        assert report.pushed == 0
        assert {r.symbol for r in store.get_rules()} == {"MSFT", "TSLA"}
        assert [item.symbol for item in store.get_watchlist()] == ["NVDA"]
        # Anonymous history went with its rule
        assert store.get_events() == []

    def test_snapshot_keeps_anonymous_data(self, workspace):
        store, cache = workspace
        seed_local(store)
        SyncReconciler(store, FakeBackend(server_rules()), cache).on_sign_in("user-1")

        snapshot = cache.load()
        assert [e.rule.symbol for e in snapshot.entries] == ["AAPL"]
        assert snapshot.entries[0].state.last_value == 64.0
        assert len(snapshot.entries[0].events) == 1
        assert [item.symbol for item in snapshot.watchlist] == ["AAPL"]

    def test_failed_rule_fetch_leaves_local_rules(self, workspace):
        store, cache = workspace
        rule_id = seed_local(store)
        backend = FakeBackend(watchlist=[WatchlistItem(symbol="NVDA")], fail={"fetch_rules"})

        report = SyncReconciler(store, backend, cache).on_sign_in("user-1")

        assert not report.ok
        assert report.rules_replaced is None
        assert report.watchlist_replaced == 1
        assert store.get_state(rule_id).last_value == 64.0
        # The local rule was still pending, so it was pushed
        assert report.pushed == 1
        assert store.get_rule(rule_id).remote_id == 101

    def test_unreachable_backend_changes_nothing(self, workspace):
        store, cache = workspace
        rule_id = seed_local(store)
        backend = FakeBackend(fail={"fetch_rules", "fetch_watchlist", "push_rule"})

        report = SyncReconciler(store, backend, cache).on_sign_in("user-1")

        assert len(report.errors) == 3
        assert report.pushed == 0
        assert store.get_rule(rule_id).is_pending
        assert [item.symbol for item in store.get_watchlist()] == ["AAPL"]

    def test_matching_remote_rule_keeps_state(self, workspace):
        store, cache = workspace
        rule_id = store.save_rule(AlertRule(symbol="MSFT", timeframe="1h", remote_id=1))
        store.save_state(AlertState(rule_id=rule_id, last_value=55.0))

        SyncReconciler(store, FakeBackend(server_rules()), cache).on_sign_in("user-1")

        assert store.get_rule_by_remote_id(1).id == rule_id
        assert store.get_state(rule_id).last_value == 55.0


class TestPushPending:
    def test_push_assigns_remote_ids(self, workspace):
        store, cache = workspace
        first = store.save_rule(AlertRule(symbol="AAPL", timeframe="1d"))
        second = store.save_rule(AlertRule(symbol="MSFT", timeframe="1d"))
        backend = FakeBackend()

        assert SyncReconciler(store, backend, cache).push_pending("user-1") == 2
        assert store.get_pending_rules() == []
        assert {store.get_rule(first).remote_id, store.get_rule(second).remote_id} == {101, 102}

    def test_rejected_rule_stays_pending(self, workspace):
        store, cache = workspace
        store.save_rule(AlertRule(symbol="AAPL", timeframe="1d"))
        backend = FakeBackend(fail={"push_rule"})
        assert SyncReconciler(store, backend, cache).push_pending("user-1") == 0
        assert len(store.get_pending_rules()) == 1


class TestRecoveryCache:
    def test_restore_brings_rules_back_pending(self, workspace):
        store, cache = workspace
        seed_local(store)
        SyncReconciler(store, FakeBackend(server_rules()), cache).on_sign_in("user-1")

        assert cache.restore(store) == 1

        restored = [r for r in store.get_rules() if r.symbol == "AAPL"]
        assert len(restored) == 1
        assert restored[0].is_pending
        assert store.get_state(restored[0].id).last_value == 64.0
        assert len(store.get_events(rule_id=restored[0].id)) == 1
        assert [item.symbol for item in store.get_watchlist()] == ["AAPL"]
        # Synced account rules are kept
        assert {r.symbol for r in store.get_rules()} == {"AAPL", "MSFT", "TSLA"}

    def test_no_snapshot(self, workspace):
        store, cache = workspace
        assert cache.load() is None
        assert cache.restore(store) == 0
        assert not cache.clear()

    def test_clear(self, workspace):
        store, cache = workspace
        cache.save(cache.capture(store))
        assert cache.clear()
        assert cache.load() is None


class TestDeviceRegistration:
    def test_registration_saved_locally_even_on_failure(self, workspace):
        store, cache = workspace
        device = DeviceInfo(device_id="dev-1", fcm_token="tok", platform="android", user_id="user-1")

        ok = SyncReconciler(store, FakeBackend(fail={"register_device"}), cache).register_device(device)

        assert not ok
        assert store.get_device("dev-1") is not None

    def test_registration_success(self, workspace):
        store, cache = workspace
        backend = FakeBackend()
        device = DeviceInfo(device_id="dev-1", fcm_token="tok", user_id="user-1")
        assert SyncReconciler(store, backend, cache).register_device(device)
        assert backend.devices == [device]
