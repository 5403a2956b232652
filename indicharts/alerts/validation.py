"""Alert rule validation.

Malformed rules are rejected when they are saved so the evaluator never
sees them.
"""

from typing import Any

from pydantic import ValidationError

from indicharts.errors import InvalidConfigurationError
from indicharts.models import INDICATOR_SPECS, TIMEFRAMES, AlertRule, IndicatorConfig
from indicharts.models.indicator import normalize_kind

VALID_MODES = ("cross", "enter", "exit")
VALID_DIRECTIONS = ("both", "up", "down")

# Tolerance used when comparing levels of two rules
LEVEL_TOLERANCE = 0.001


def rule_problems(rule: AlertRule) -> list[str]:
    """List everything wrong with a rule (empty when valid)."""
    problems = []
    config = rule.indicator
    spec = INDICATOR_SPECS.get(config.kind)

    if config.period <= 0:
        problems.append(f"period must be positive, got {config.period}")
    for name, value in config.resolved_params().items():
        if name.endswith("_period") and value <= 0:
            problems.append(f"{name} must be positive, got {value}")

    if not rule.levels:
        problems.append("at least one level is required")
    else:
        if list(rule.levels) != sorted(rule.levels):
            problems.append(f"levels must be sorted ascending, got {rule.levels}")
        if len(set(rule.levels)) != len(rule.levels):
            problems.append(f"levels must be distinct, got {rule.levels}")
        if spec is not None:
            out_of_range = [
                level for level in rule.levels
                if not spec.min_value <= level <= spec.max_value
            ]
            if out_of_range:
                problems.append(
                    f"levels {out_of_range} outside {spec.name} range "
                    f"{spec.min_value:g}..{spec.max_value:g}"
                )

    if rule.mode not in VALID_MODES:
        problems.append(f"unknown mode {rule.mode!r}")
    elif rule.mode in ("enter", "exit") and len(rule.levels) < 2:
        problems.append(f"{rule.mode} mode needs two levels")
    if rule.direction not in VALID_DIRECTIONS:
        problems.append(f"unknown direction {rule.direction!r}")
    if rule.timeframe not in TIMEFRAMES:
        problems.append(f"unknown timeframe {rule.timeframe!r}")
    if rule.hysteresis < 0:
        problems.append("hysteresis must not be negative")
    if rule.cooldown_sec < 0:
        problems.append("cooldown must not be negative")
    return problems


def validate_rule(rule: AlertRule) -> AlertRule:
    """Return the rule unchanged if valid.

    Raises:
        InvalidConfigurationError: Listing every problem found.
    """
    problems = rule_problems(rule)
    if problems:
        raise InvalidConfigurationError(problems)
    return rule


def make_rule(**fields: Any) -> AlertRule:
    """Build and validate a rule from loose field values.

    Accepts ``indicator`` as a kind name (aliases like ``wpr`` allowed) with
    ``period`` and ``params`` alongside, or as an IndicatorConfig. Field
    errors from pydantic are reported as configuration errors.
    """
    indicator = fields.pop("indicator", None)
    period = fields.pop("period", None)
    params = fields.pop("params", None)
    if not isinstance(indicator, IndicatorConfig):
        kind = normalize_kind(indicator or "rsi")
        spec = INDICATOR_SPECS.get(kind)
        indicator = {
            "kind": kind,
            "period": period if period is not None else (spec.default_period if spec else 14),
            "params": params or {},
        }
        if "levels" not in fields and spec is not None:
            fields["levels"] = list(spec.default_levels)
    if "symbol" in fields and isinstance(fields["symbol"], str):
        fields["symbol"] = fields["symbol"].strip().upper()

    try:
        rule = AlertRule(indicator=indicator, **fields)
    except ValidationError as e:
        raise InvalidConfigurationError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        ) from e
    return validate_rule(rule)


def levels_match(a: list[float], b: list[float], tolerance: float = LEVEL_TOLERANCE) -> bool:
    """Compare two level lists element-wise within `tolerance`."""
    if len(a) != len(b):
        return False
    # Absorb float representation error (70.0 - 69.999 > 0.001 in binary)
    return all(abs(x - y) <= tolerance + 1e-9 for x, y in zip(sorted(a), sorted(b)))


def is_duplicate(candidate: AlertRule, existing: AlertRule) -> bool:
    """Whether two rules describe the same alert."""
    return (
        candidate.symbol == existing.symbol
        and candidate.timeframe == existing.timeframe
        and candidate.indicator.kind == existing.indicator.kind
        and candidate.indicator.period == existing.indicator.period
        and levels_match(candidate.levels, existing.levels)
        and candidate.indicator.resolved_params() == existing.indicator.resolved_params()
    )
