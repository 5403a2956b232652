"""Alert evaluation: zone classification, rule state machine and engine."""

from indicharts.alerts.engine import AlertEngine
from indicharts.alerts.evaluator import AlertEvaluator, Evaluation, format_message
from indicharts.alerts.notify import CollectingNotifier, ConsoleNotifier, LogNotifier, Notifier
from indicharts.alerts.validation import (
    is_duplicate,
    levels_match,
    make_rule,
    rule_problems,
    validate_rule,
)
from indicharts.alerts.zones import Classification, Crossing, ZoneClassifier

__all__ = [
    "AlertEngine",
    "AlertEvaluator",
    "Classification",
    "CollectingNotifier",
    "ConsoleNotifier",
    "Crossing",
    "Evaluation",
    "LogNotifier",
    "Notifier",
    "ZoneClassifier",
    "format_message",
    "is_duplicate",
    "levels_match",
    "make_rule",
    "rule_problems",
    "validate_rule",
]
