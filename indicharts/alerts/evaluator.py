"""Per-rule alert state machine.

The evaluator is pure: it takes a rule, its previous state and a new
indicator value and returns the next state plus, when the rule fires, the
event to persist and the trigger to deliver. Persistence and delivery are
the caller's job (see AlertEngine).
"""

from datetime import datetime
from typing import Any, NamedTuple, Optional

from indicharts.alerts.zones import Classification, ZoneClassifier
from indicharts.models import AlertEvent, AlertRule, AlertState, AlertTrigger, Bar

# Evaluation outcomes
COLD_START = "cold_start"
FIRED = "fired"
NO_SIGNAL = "no_signal"
COOLDOWN = "cooldown"
SPENT = "spent"
STALE = "stale"
INACTIVE = "inactive"


class Signal(NamedTuple):
    type: str
    level: float


class Evaluation(NamedTuple):
    """Outcome of evaluating one rule against one bar."""

    outcome: str
    state: AlertState
    event: Optional[AlertEvent] = None
    trigger: Optional[AlertTrigger] = None

    @property
    def fired(self) -> bool:
        return self.outcome == FIRED

    @property
    def changed(self) -> bool:
        """Whether the state must be written back."""
        return self.outcome not in (STALE, INACTIVE)


def format_message(rule: AlertRule, signal: Signal, value: float) -> str:
    """Human-readable description of a firing."""
    name = rule.indicator.spec.name
    if signal.type == "cross_up":
        return f"{name} crossed level {signal.level:g} upward ({value:.1f})"
    if signal.type == "cross_down":
        return f"{name} crossed level {signal.level:g} downward ({value:.1f})"
    lower, upper = rule.sorted_levels[0], rule.sorted_levels[-1]
    if signal.type == "enter_zone":
        return f"{name} entered zone {lower:g}-{upper:g} ({value:.1f})"
    return f"{name} exited zone {lower:g}-{upper:g} ({value:.1f})"


class AlertEvaluator:
    """Applies a rule's mode, cooldown and repeat policy to classified values.

    Conceptually each rule is IDLE (no signal), ARMED (signal, may fire) or
    COOLING (signal rejected until the cooldown expires). State is always
    advanced, even when nothing fires, so hysteresis and cooldown
    comparisons on the next bar see the latest value.
    """

    def __init__(self, classifier: Optional[ZoneClassifier] = None):
        self.classifier = classifier or ZoneClassifier()

    def evaluate(
        self,
        rule: AlertRule,
        state: Optional[AlertState],
        value: float,
        bar: Bar,
        now: datetime,
        indicator_state: Optional[dict[str, Any]] = None,
    ) -> Evaluation:
        """Evaluate `rule` for a new indicator value.

        Args:
            rule: Rule to evaluate (must have an ID).
            state: Previous state, or None when the rule was never evaluated.
            value: Indicator value computed for `bar`.
            bar: Bar the value was computed from.
            now: Current wall-clock time; cooldowns are measured against it.
            indicator_state: Calculator state to store for incremental resume.

        Returns:
            Evaluation with the next state.
        """
        previous = state or AlertState(rule_id=rule.id)

        if not rule.active:
            return Evaluation(INACTIVE, previous)
        if previous.last_bar_ts is not None and bar.timestamp <= previous.last_bar_ts:
            return Evaluation(STALE, previous)

        cold = state is None or previous.last_value is None
        classification = self.classifier.classify(
            value,
            rule.sorted_levels,
            rule.margin(),
            None if cold else previous.latches,
        )

        updated = previous.model_copy(update={
            "last_value": value,
            "last_bar_ts": bar.timestamp,
            "last_side": classification.side,
            "latches": classification.latches,
            "indicator_state": indicator_state if indicator_state is not None else previous.indicator_state,
        })

        if classification.cold_start:
            return Evaluation(COLD_START, updated)

        signal = self.match_mode(rule, classification)
        if signal is None:
            return Evaluation(NO_SIGNAL, updated)

        if previous.last_fire_ts is not None:
            # Negative elapsed time (clock stepped back) also counts as cooling
            elapsed = (now - previous.last_fire_ts).total_seconds()
            if elapsed < rule.cooldown_sec or elapsed < 0:
                return Evaluation(COOLDOWN, updated)
            if not rule.repeatable:
                return Evaluation(SPENT, updated)

        message = format_message(rule, signal, value)
        fired_state = updated.model_copy(update={"last_fire_ts": now})
        event = AlertEvent(
            rule_id=rule.id,
            ts=now,
            indicator=rule.indicator.kind,
            value=value,
            level=signal.level,
            side=signal.type,
            bar_ts=bar.timestamp,
            symbol=rule.symbol,
            message=message,
        )
        trigger = AlertTrigger(
            alert_id=rule.id,
            symbol=rule.symbol,
            value=value,
            level=signal.level,
            type=signal.type,
            message=message,
        )
        return Evaluation(FIRED, fired_state, event, trigger)

    @staticmethod
    def match_mode(rule: AlertRule, classification: Classification) -> Optional[Signal]:
        """Decide whether the rule's mode is satisfied by a classification.

        ``cross`` fires on a latch flip at any level in either direction,
        narrowed by ``rule.direction``. When one bar flips several levels the
        farthest level in the direction of travel is reported. ``enter`` and
        ``exit`` compare the latched zone before and after the value.
        """
        if rule.mode == "cross":
            wanted = {"both": ("up", "down"), "up": ("up",), "down": ("down",)}[rule.direction]
            matches = [c for c in classification.crossings if c.direction in wanted]
            if not matches:
                return None
            crossing = matches[-1]
            return Signal(f"cross_{crossing.direction}", crossing.level)

        levels = rule.sorted_levels
        before, after = classification.previous_side, classification.side
        if rule.mode == "enter" and before in ("below", "above") and after == "between":
            return Signal("enter_zone", levels[0] if before == "below" else levels[-1])
        if rule.mode == "exit" and before == "between" and after in ("below", "above"):
            return Signal("exit_zone", levels[0] if after == "below" else levels[-1])
        return None
