"""Alert engine: feeds bars through indicators and rules.

Bars for one (symbol, timeframe) pair are processed serially and each bar is
carried to completion (read state, compute, write state and event) before
the next. Rules sharing an indicator configuration share one IndicatorSample
computation but keep their own AlertState.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Iterable, Optional

from indicharts.alerts.evaluator import AlertEvaluator, Evaluation
from indicharts.alerts.notify import LogNotifier, Notifier
from indicharts.indicators import get_calculator
from indicharts.models import AlertRule, Bar, IndicatorConfig, IndicatorSample

logger = logging.getLogger(__name__)


class AlertEngine:
    """Evaluates every active rule of a symbol/timeframe on each new bar."""

    def __init__(
        self,
        store,
        notifier: Optional[Notifier] = None,
        evaluator: Optional[AlertEvaluator] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the engine.

        Args:
            store: DataStore holding rules, states, events and samples.
            notifier: Receives a trigger for every firing.
            evaluator: Rule state machine.
            clock: Source of wall-clock time for cooldowns.
        """
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.evaluator = evaluator or AlertEvaluator()
        self.clock = clock

    def _resume_state(self, rules: list[AlertRule], bar: Bar) -> Optional[dict]:
        """Most recent calculator state kept by any rule older than `bar`."""
        best = None
        for rule in rules:
            state = self.store.get_state(rule.id)
            if state is None or not state.indicator_state or state.last_bar_ts is None:
                continue
            if state.last_bar_ts >= bar.timestamp:
                continue
            if best is None or state.last_bar_ts > best.last_bar_ts:
                best = state
        return best.indicator_state if best else None

    def advance_sample(
        self,
        symbol: str,
        timeframe: str,
        config: IndicatorConfig,
        bar: Bar,
        rules: Optional[list[AlertRule]] = None,
    ) -> Optional[IndicatorSample]:
        """Apply `bar` to the shared computation for one indicator config.

        A bar already applied returns the cached sample unchanged. A bar
        older than the cached one is stale and returns None.
        """
        sample = self.store.get_sample(symbol, timeframe, config.key)
        if sample is not None:
            if sample.timestamp == bar.timestamp:
                return sample
            if sample.timestamp > bar.timestamp:
                logger.debug("Stale bar %s for %s %s %s", bar.timestamp, symbol, timeframe, config.key)
                return None
            prior = sample.state
        else:
            prior = self._resume_state(rules or [], bar)

        result = get_calculator(config).step(bar, prior)
        sample = IndicatorSample(
            symbol=symbol,
            timeframe=timeframe,
            config_key=config.key,
            timestamp=bar.timestamp,
            value=result.value,
            close=bar.close,
            state=result.state,
        )
        self.store.save_sample(sample)
        return sample

    @staticmethod
    def _group_rules(rules: Iterable[AlertRule]) -> dict[str, list[AlertRule]]:
        groups: dict[str, list[AlertRule]] = defaultdict(list)
        for rule in rules:
            groups[rule.indicator.key].append(rule)
        return groups

    def process_bar(
        self,
        symbol: str,
        timeframe: str,
        bar: Bar,
        now: Optional[datetime] = None,
    ) -> list[Evaluation]:
        """Evaluate all active rules of a symbol/timeframe against a new bar.

        Failures never escape: a broken indicator group or rule is logged and
        skipped for this tick.

        Args:
            symbol: Trading symbol.
            timeframe: Bar timeframe.
            bar: The new bar.
            now: Wall-clock time of the evaluation (defaults to the clock).

        Returns:
            Evaluations of the rules that were evaluated.
        """
        now = now or self.clock()
        rules = self.store.get_rules_for(symbol, timeframe)
        evaluations = []

        for key, group in self._group_rules(rules).items():
            try:
                sample = self.advance_sample(symbol, timeframe, group[0].indicator, bar, group)
            except Exception:
                logger.exception("Indicator %s failed for %s %s", key, symbol, timeframe)
                continue
            if sample is None or sample.value is None:
                continue

            for rule in group:
                try:
                    evaluation = self._evaluate_rule(rule, sample, bar, now)
                except Exception:
                    logger.exception("Evaluation of rule %s failed", rule.id)
                    continue
                if evaluation is not None:
                    evaluations.append(evaluation)

        return evaluations

    def _evaluate_rule(
        self, rule: AlertRule, sample: IndicatorSample, bar: Bar, now: datetime
    ) -> Optional[Evaluation]:
        state = self.store.get_state(rule.id)
        evaluation = self.evaluator.evaluate(
            rule, state, sample.value, bar, now, indicator_state=sample.state
        )
        logger.debug(
            "Rule %s %s %s: %s=%.2f -> %s",
            rule.id, rule.symbol, rule.timeframe, rule.indicator.kind, sample.value, evaluation.outcome,
        )
        if not evaluation.changed:
            return evaluation

        self.store.record_evaluation(evaluation.state, evaluation.event)
        if evaluation.fired:
            logger.info("Rule %s fired: %s %s", rule.id, rule.symbol, evaluation.trigger.message)
            try:
                self.notifier.notify(evaluation.trigger)
            except Exception:
                logger.exception("Notifier failed for rule %s", rule.id)
        return evaluation

    def process_bars(
        self,
        symbol: str,
        timeframe: str,
        bars: Iterable[Bar],
        now: Optional[datetime] = None,
    ) -> list[Evaluation]:
        """Process bars in timestamp order, one at a time."""
        evaluations = []
        for bar in sorted(bars, key=lambda b: b.timestamp):
            evaluations.extend(self.process_bar(symbol, timeframe, bar, now))
        return evaluations

    def prime(self, symbol: str, timeframe: str, bars: Iterable[Bar]) -> int:
        """Warm the shared indicator samples from history without evaluating rules.

        Returns:
            Number of bars applied.
        """
        groups = self._group_rules(self.store.get_rules_for(symbol, timeframe))
        applied = 0
        for bar in sorted(bars, key=lambda b: b.timestamp):
            for group in groups.values():
                self.advance_sample(symbol, timeframe, group[0].indicator, bar, group)
            applied += 1
        return applied
