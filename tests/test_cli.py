"""Tests for the command line interface."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner

from indicharts.cli import cli
from indicharts.config import load_config
from indicharts.context import AppContext
from indicharts.db.store import DataStore
from indicharts.market import BaseMarketData
from indicharts.models import AlertEvent, Bar

T = datetime(2024, 6, 3, 9, 0)


@pytest.fixture
def env():
    """Config file pointing at a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        tmp = Path(tmpdir)
        config_path = tmp / "config.toml"
        config_path.write_text(f'[database]\npath = "{(tmp / "test.db").as_posix()}"\n')
        yield config_path, tmp / "test.db"


def invoke(config_path: Path, *args, obj=None):
    return CliRunner().invoke(cli, ["--config", str(config_path), *args], obj=obj)


class TestAlertCommands:
    def test_create_alert(self, env):
        config_path, db_path = env
        result = invoke(config_path, "alert", "btc-usd", "-t", "1h")
        assert result.exit_code == 0, result.output
        assert "Alert Created" in result.output

        rules = DataStore(db_path).get_rules()
        assert [(r.symbol, r.timeframe, r.levels) for r in rules] == [("BTC-USD", "1h", [30.0, 70.0])]
        assert rules[0].cooldown_sec == 600

    def test_duplicate_is_not_saved(self, env):
        config_path, db_path = env
        invoke(config_path, "alert", "AAPL", "-t", "1d", "-l", "30,70")
        result = invoke(config_path, "alert", "AAPL", "-t", "1d", "-l", "30.0005,70")
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert len(DataStore(db_path).get_rules()) == 1

    def test_invalid_levels(self, env):
        config_path, db_path = env
        result = invoke(config_path, "alert", "AAPL", "-l", "70,30")
        assert result.exit_code == 1
        assert "Invalid alert" in result.output
        assert DataStore(db_path).get_rules() == []

    def test_non_numeric_levels(self, env):
        config_path, _ = env
        result = invoke(config_path, "alert", "AAPL", "-l", "low,high")
        assert result.exit_code == 2

    def test_list_and_remove(self, env):
        config_path, db_path = env
        invoke(config_path, "alert", "AAPL", "-t", "1d")
        rule_id = DataStore(db_path).get_rules()[0].id

        listing = invoke(config_path, "alerts")
        assert listing.exit_code == 0
        assert "AAPL" in listing.output

        removed = invoke(config_path, "alerts", "--remove", str(rule_id))
        assert f"Removed alert {rule_id}" in removed.output
        assert DataStore(db_path).get_rules() == []

        missing = invoke(config_path, "alerts", "--remove", str(rule_id))
        assert "not found" in missing.output

    def test_pause_and_resume(self, env):
        config_path, db_path = env
        invoke(config_path, "alert", "AAPL", "-t", "1d")
        store = DataStore(db_path)
        rule_id = store.get_rules()[0].id

        assert f"Paused alert {rule_id}" in invoke(config_path, "alerts", "--pause", str(rule_id)).output
        assert store.get_rules_for("AAPL", "1d") == []
        assert f"Resumed alert {rule_id}" in invoke(config_path, "alerts", "--resume", str(rule_id)).output
        assert len(store.get_rules_for("AAPL", "1d")) == 1
        assert "not found" in invoke(config_path, "alerts", "--pause", "999").output

    def test_empty_list(self, env):
        config_path, _ = env
        result = invoke(config_path, "alerts", "--custom")
        assert result.exit_code == 0
        assert "No alerts set" in result.output


class TestEventCommands:
    def test_events_and_mark_read(self, env):
        config_path, db_path = env
        assert "No events" in invoke(config_path, "events").output

        invoke(config_path, "alert", "AAPL", "-t", "1d")
        store = DataStore(db_path)
        rule_id = store.get_rules()[0].id
        event_id = store.append_event(AlertEvent(
            rule_id=rule_id, ts=T, value=71.2, level=70.0, side="cross_up", symbol="AAPL",
            message="RSI crossed level 70 upward (71.2)",
        ))

        result = invoke(config_path, "events", "--unread")
        assert result.exit_code == 0
        assert "AAPL" in result.output

        marked = invoke(config_path, "events", "--mark-read", str(event_id))
        assert f"Marked event {event_id}" in marked.output
        assert "No events" in invoke(config_path, "events", "--unread").output


class TestWatchCommands:
    def test_watchlist_alerts(self, env):
        config_path, db_path = env
        assert "Added AAPL" in invoke(config_path, "watch", "add", "aapl").output
        assert "already in the watchlist" in invoke(config_path, "watch", "add", "AAPL").output
        invoke(config_path, "watch", "add", "MSFT")

        created = invoke(config_path, "watch", "alerts", "-t", "4h")
        assert created.exit_code == 0, created.output
        assert "Created 2 watchlist alerts" in created.output

        store = DataStore(db_path)
        assert len(store.get_watchlist_rules()) == 2
        assert store.get_custom_rules() == []

        again = invoke(config_path, "watch", "alerts", "-t", "4h")
        assert "Created 0 watchlist alerts" in again.output
        assert "Skipped 2" in again.output

        removed = invoke(config_path, "watch", "alerts", "--remove")
        assert "Removed 2 watchlist alerts" in removed.output
        assert store.get_rules() == []

    def test_remove_symbol(self, env):
        config_path, _ = env
        invoke(config_path, "watch", "add", "AAPL")
        assert "Removed AAPL" in invoke(config_path, "watch", "remove", "aapl").output
        assert "not in the watchlist" in invoke(config_path, "watch", "remove", "AAPL").output
        assert "Watchlist is empty" in invoke(config_path, "watch", "list").output


class FakeMarketData(BaseMarketData):
    def __init__(self, closes):
        self.closes = closes

    def get_bars(self, symbol, timeframe, limit=200):
        bars = [Bar(timestamp=T + timedelta(hours=i), close=c) for i, c in enumerate(self.closes)]
        return bars[-limit:]


class TestRunCommand:
    def test_run_without_alerts(self, env):
        config_path, _ = env
        result = invoke(config_path, "run", "BTC-USD", "1h")
        assert result.exit_code == 0
        assert "No active alerts" in result.output

    def test_run_evaluates_latest_bar(self, env):
        config_path, db_path = env
        invoke(config_path, "alert", "BTC-USD", "-t", "1h", "-p", "2")
        config = load_config(config_path)
        app = AppContext(config, DataStore(db_path), market_data=FakeMarketData([100.0, 101.0, 102.0, 90.0]))

        result = invoke(config_path, "run", "BTC-USD", "1h", obj={"app": app})

        assert result.exit_code == 0, result.output
        assert "cold_start" in result.output
        state = app.store.get_states()[0]
        assert state.last_bar_ts == T + timedelta(hours=3)


class TestSetupCommands:
    def test_init_writes_template(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            result = invoke(config_path, "init")
            assert result.exit_code == 0
            assert config_path.exists()
            assert "already exists" in invoke(config_path, "init").output
            assert invoke(config_path, "init", "--force").exit_code == 0

    def test_status(self, env):
        config_path, _ = env
        invoke(config_path, "watch", "add", "AAPL")
        result = invoke(config_path, "status")
        assert result.exit_code == 0
        assert "watchlist" in result.output
        assert "not configured" in result.output

    def test_bad_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.toml"
            config_path.write_text("[database\n")
            result = invoke(config_path, "status")
            assert result.exit_code == 1
            assert "Could not read configuration" in result.output


class TestSyncCommands:
    def test_sync_requires_backend(self, env):
        config_path, _ = env
        result = invoke(config_path, "sync", "user-1")
        assert result.exit_code == 1
        assert "No backend configured" in result.output

    def test_restore_without_snapshot(self, env):
        config_path, _ = env
        result = invoke(config_path, "sync", "--restore")
        assert result.exit_code == 0
        assert "No recovery snapshot" in result.output
