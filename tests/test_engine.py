"""Tests for the alert engine."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from indicharts.alerts import AlertEngine, AlertEvaluator, CollectingNotifier, Notifier
from indicharts.db.store import DataStore
from indicharts.models import AlertRule, Bar, IndicatorConfig

T = datetime(2024, 6, 3, 9, 0)

# RSI(2): the third bar yields the first value. 100, 101, 102 gives RSI 100,
# then a drop to 90 gives RSI ~7.7, crossing both 70 and 30 downward.
CLOSES = [100.0, 101.0, 102.0, 90.0]


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield DataStore(Path(tmpdir) / "test.db")


def bars(closes, start=T) -> list[Bar]:
    return [Bar(timestamp=start + timedelta(hours=i), close=c) for i, c in enumerate(closes)]


def rsi_rule(**overrides) -> AlertRule:
    fields = {
        "symbol": "BTC-USD",
        "timeframe": "1h",
        "indicator": IndicatorConfig(kind="rsi", period=2),
        "levels": [30.0, 70.0],
        "cooldown_sec": 0,
    }
    fields.update(overrides)
    return AlertRule(**fields)


def make_engine(store: DataStore, notifier=None, evaluator=None) -> AlertEngine:
    return AlertEngine(store, notifier=notifier or CollectingNotifier(), evaluator=evaluator, clock=lambda: T)


class TestProcessBar:
    def test_warm_up_evaluates_nothing(self, temp_db: DataStore):
        rule_id = temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db)
        evaluations = engine.process_bars("BTC-USD", "1h", bars(CLOSES[:2]))
        assert evaluations == []
        assert temp_db.get_state(rule_id) is None
        assert temp_db.get_sample("BTC-USD", "1h", rsi_rule().indicator.key).value is None

    def test_cold_start_then_fire(self, temp_db: DataStore):
        rule_id = temp_db.save_rule(rsi_rule())
        notifier = CollectingNotifier()
        engine = make_engine(temp_db, notifier)

        evaluations = engine.process_bars("BTC-USD", "1h", bars(CLOSES))

        assert [e.outcome for e in evaluations] == ["cold_start", "fired"]
        assert evaluations[0].state.last_value == pytest.approx(100.0)
        event = evaluations[1].event
        assert event.side == "cross_down"
        assert event.level == 30.0
        assert event.bar_ts == T + timedelta(hours=3)

        stored = temp_db.get_events(rule_id=rule_id)
        assert len(stored) == 1
        assert stored[0].message == event.message
        assert [t.alert_id for t in notifier.triggers] == [rule_id]
        assert temp_db.get_state(rule_id).last_fire_ts == T

    def test_bars_processed_in_timestamp_order(self, temp_db: DataStore):
        temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db)
        evaluations = engine.process_bars("BTC-USD", "1h", list(reversed(bars(CLOSES))))
        assert [e.outcome for e in evaluations] == ["cold_start", "fired"]

    def test_other_pairs_untouched(self, temp_db: DataStore):
        temp_db.save_rule(rsi_rule(timeframe="4h"))
        temp_db.save_rule(rsi_rule(symbol="ETH-USD"))
        temp_db.save_rule(rsi_rule(active=False))
        engine = make_engine(temp_db)
        assert engine.process_bars("BTC-USD", "1h", bars(CLOSES)) == []


class TestSharedSamples:
    """
    *For any* set of rules with the same indicator configuration, one
    sample is computed and every rule sees the same value.
    """

    @given(rule_count=st.integers(min_value=1, max_value=4))
    @settings(max_examples=10, deadline=None)
    def test_rules_share_one_sample(self, rule_count: int):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            ids = [
                store.save_rule(rsi_rule(levels=[20.0 + i, 80.0 - i])) for i in range(rule_count)
            ]
            engine = make_engine(store)
            engine.process_bars("BTC-USD", "1h", bars(CLOSES))

            assert store.get_stats()["indicator_sample"] == 1
            values = {store.get_state(rule_id).last_value for rule_id in ids}
            assert len(values) == 1

    def test_different_configs_get_their_own_sample(self, temp_db: DataStore):
        temp_db.save_rule(rsi_rule())
        temp_db.save_rule(rsi_rule(indicator=IndicatorConfig(kind="rsi", period=3)))
        make_engine(temp_db).process_bars("BTC-USD", "1h", bars(CLOSES))
        assert temp_db.get_stats()["indicator_sample"] == 2


class TestReplay:
    def test_same_bar_is_stale(self, temp_db: DataStore):
        rule_id = temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db)
        history = bars(CLOSES)
        engine.process_bars("BTC-USD", "1h", history)

        again = engine.process_bar("BTC-USD", "1h", history[-1])

        assert [e.outcome for e in again] == ["stale"]
        assert len(temp_db.get_events(rule_id=rule_id)) == 1

    def test_older_bar_is_skipped(self, temp_db: DataStore):
        temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db)
        history = bars(CLOSES)
        engine.process_bars("BTC-USD", "1h", history)
        sample = temp_db.get_sample("BTC-USD", "1h", rsi_rule().indicator.key)

        assert engine.process_bar("BTC-USD", "1h", history[1]) == []
        assert temp_db.get_sample("BTC-USD", "1h", rsi_rule().indicator.key) == sample


class TestPrime:
    def test_prime_warms_without_firing(self, temp_db: DataStore):
        rule_id = temp_db.save_rule(rsi_rule())
        notifier = CollectingNotifier()
        engine = make_engine(temp_db, notifier)
        history = bars(CLOSES)

        assert engine.prime("BTC-USD", "1h", history[:-1]) == 3
        assert temp_db.get_state(rule_id) is None
        assert temp_db.get_sample("BTC-USD", "1h", rsi_rule().indicator.key).value == pytest.approx(100.0)

        # First evaluation after priming is a cold start
        evaluations = engine.process_bar("BTC-USD", "1h", history[-1])
        assert [e.outcome for e in evaluations] == ["cold_start"]
        assert notifier.triggers == []


class FailingNotifier(Notifier):
    def notify(self, trigger):
        raise ConnectionError("push service unavailable")


class PickyEvaluator(AlertEvaluator):
    """Raises for one rule ID."""

    def __init__(self, bad_rule_id: int):
        super().__init__()
        self.bad_rule_id = bad_rule_id

    def evaluate(self, rule, *args, **kwargs):
        if rule.id == self.bad_rule_id:
            raise RuntimeError("boom")
        return super().evaluate(rule, *args, **kwargs)


class TestFailureIsolation:
    def test_notifier_failure_keeps_event(self, temp_db: DataStore):
        rule_id = temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db, FailingNotifier())
        evaluations = engine.process_bars("BTC-USD", "1h", bars(CLOSES))
        assert evaluations[-1].fired
        assert len(temp_db.get_events(rule_id=rule_id)) == 1

    def test_broken_rule_does_not_block_others(self, temp_db: DataStore):
        bad = temp_db.save_rule(rsi_rule(levels=[25.0, 75.0]))
        good = temp_db.save_rule(rsi_rule())
        engine = make_engine(temp_db, evaluator=PickyEvaluator(bad))

        evaluations = engine.process_bars("BTC-USD", "1h", bars(CLOSES))

        assert {e.state.rule_id for e in evaluations} == {good}
        assert temp_db.get_state(bad) is None
        assert len(temp_db.get_events(rule_id=good)) == 1
