"""Incremental indicator calculators.

Each calculator advances an indicator by one bar given the state returned by
the previous step. State is a plain JSON-serialisable dict, so it can be
persisted with an AlertState or IndicatorSample and the computation resumed
after a restart without replaying price history.
"""

from typing import Any, NamedTuple, Optional, Protocol

from indicharts.errors import InvalidConfigurationError
from indicharts.indicators.technical import rsi_from_averages
from indicharts.models import Bar, IndicatorConfig


class IndicatorResult(NamedTuple):
    """Value produced by one step (None while warming up) and the new state."""

    value: Optional[float]
    state: dict[str, Any]


class IndicatorCalculator(Protocol):
    """Capability shared by every calculator kind."""

    period: int

    def step(self, bar: Bar, state: Optional[dict[str, Any]]) -> IndicatorResult:
        ...


def _require_positive(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidConfigurationError(f"{name} must be a positive integer, got {value!r}")
    return value


class RsiCalculator:
    """Wilder RSI.

    Warm-up keeps a running mean of gains/losses, which equals the simple
    average once `period` changes have been seen. From then on the averages
    follow ``au' = (au * (period - 1) + gain) / period``.
    """

    def __init__(self, period: int = 14):
        self.period = _require_positive("period", period)

    def step(self, bar: Bar, state: Optional[dict[str, Any]]) -> IndicatorResult:
        if not state or state.get("prev_close") is None:
            return IndicatorResult(None, {"prev_close": bar.close, "count": 0, "au": 0.0, "ad": 0.0})

        change = bar.close - state["prev_close"]
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0

        # States persisted without a count already hold full Wilder averages
        count = state.get("count", self.period)
        au = state.get("au") or 0.0
        ad = state.get("ad") or 0.0

        if count < self.period:
            au = (au * count + gain) / (count + 1)
            ad = (ad * count + loss) / (count + 1)
        else:
            au = (au * (self.period - 1) + gain) / self.period
            ad = (ad * (self.period - 1) + loss) / self.period
        count = min(count + 1, self.period)

        new_state = {"prev_close": bar.close, "count": count, "au": au, "ad": ad}
        if count < self.period:
            return IndicatorResult(None, new_state)
        return IndicatorResult(rsi_from_averages(au, ad), new_state)


class _RangeWindow:
    """Rolling high/low window shared by the range oscillators."""

    @staticmethod
    def push(state: Optional[dict[str, Any]], bar: Bar, size: int) -> tuple[list, list]:
        highs = list((state or {}).get("highs", []))[-(size - 1):] if size > 1 else []
        lows = list((state or {}).get("lows", []))[-(size - 1):] if size > 1 else []
        highs.append(bar.bar_high)
        lows.append(bar.bar_low)
        return highs, lows

    @staticmethod
    def position(highs: list[float], lows: list[float], close: float) -> Optional[float]:
        highest = max(highs)
        lowest = min(lows)
        if highest == lowest:
            return None
        return (close - lowest) / (highest - lowest)


class StochasticCalculator:
    """Slow Stochastic %K (SMA of raw %K); %D is tracked in the state."""

    def __init__(self, period: int = 6, slow_period: int = 3, d_period: int = 3):
        self.period = _require_positive("period", period)
        self.slow_period = _require_positive("slow_period", slow_period)
        self.d_period = _require_positive("d_period", d_period)

    def step(self, bar: Bar, state: Optional[dict[str, Any]]) -> IndicatorResult:
        state = state or {}
        highs, lows = _RangeWindow.push(state, bar, self.period)
        raw_k = list(state.get("raw_k", []))
        k_values = list(state.get("k_values", []))

        new_state: dict[str, Any] = {"highs": highs, "lows": lows}
        if len(highs) < self.period:
            new_state.update(raw_k=raw_k, k_values=k_values)
            return IndicatorResult(None, new_state)

        position = _RangeWindow.position(highs, lows, bar.close)
        raw = 50.0 if position is None else max(0.0, min(100.0, position * 100.0))
        raw_k = (raw_k + [raw])[-self.slow_period:]
        new_state["raw_k"] = raw_k

        if len(raw_k) < self.slow_period:
            new_state["k_values"] = k_values
            return IndicatorResult(None, new_state)

        k = sum(raw_k) / self.slow_period
        k_values = (k_values + [k])[-self.d_period:]
        new_state["k_values"] = k_values
        new_state["k"] = k
        new_state["d"] = sum(k_values) / len(k_values)
        return IndicatorResult(k, new_state)


class WilliamsRCalculator:
    """Williams %R over a rolling high/low window (-100..0)."""

    def __init__(self, period: int = 14):
        self.period = _require_positive("period", period)

    def step(self, bar: Bar, state: Optional[dict[str, Any]]) -> IndicatorResult:
        highs, lows = _RangeWindow.push(state, bar, self.period)
        new_state = {"highs": highs, "lows": lows}
        if len(highs) < self.period:
            return IndicatorResult(None, new_state)

        position = _RangeWindow.position(highs, lows, bar.close)
        if position is None:
            return IndicatorResult(-50.0, new_state)
        return IndicatorResult(max(-100.0, min(0.0, (position - 1.0) * 100.0)), new_state)


def get_calculator(config: IndicatorConfig) -> IndicatorCalculator:
    """Select the calculator for an indicator configuration by its kind tag.

    Raises:
        InvalidConfigurationError: If the period or a parameter is not positive.
    """
    params = config.resolved_params()
    if config.kind == "rsi":
        return RsiCalculator(config.period)
    if config.kind == "stoch":
        return StochasticCalculator(
            config.period,
            slow_period=int(params.get("slow_period", 3)),
            d_period=int(params.get("d_period", 3)),
        )
    if config.kind == "williams":
        return WilliamsRCalculator(config.period)
    raise InvalidConfigurationError(f"Unknown indicator kind: {config.kind!r}")
