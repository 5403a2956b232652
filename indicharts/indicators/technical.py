"""Batch oscillator calculations.

These compute a whole series at once and serve as the reference the
incremental calculators are checked against. Results are aligned with the
input; positions without enough history hold NaN.
"""

from typing import Optional


def calculate_sma(values: list[float], period: int) -> list[float]:
    """Calculate Simple Moving Average.

    Args:
        values: Input series
        period: Number of periods for the moving average

    Returns:
        List of SMA values. First (period-1) values will be NaN.
    """
    if len(values) < period or period < 1:
        return [float('nan')] * len(values)

    result = [float('nan')] * (period - 1)

    for i in range(period - 1, len(values)):
        window = values[i - period + 1:i + 1]
        result.append(sum(window) / period)

    return result


def rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    """RSI value for a pair of Wilder averages (100 when there are no losses)."""
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return max(0.0, min(100.0, 100 - (100 / (1 + rs))))


def calculate_rsi(prices: list[float], period: int = 14) -> list[float]:
    """Calculate Relative Strength Index with Wilder's smoothing.

    The first average gain/loss is the simple mean of the first `period`
    changes; later averages use ``(prev * (period - 1) + current) / period``.

    Args:
        prices: List of price values (typically close prices)
        period: RSI period (default 14)

    Returns:
        List of RSI values (0-100). First `period` values will be NaN.
    """
    if len(prices) < period + 1 or period < 1:
        return [float('nan')] * len(prices)

    changes = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    gains = [max(0.0, c) for c in changes]
    losses = [max(0.0, -c) for c in changes]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    result = [float('nan')] * period
    result.append(rsi_from_averages(avg_gain, avg_loss))

    for i in range(period, len(changes)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result.append(rsi_from_averages(avg_gain, avg_loss))

    return result


def _range_position(
    highs: list[float], lows: list[float], close: float
) -> Optional[float]:
    """Position of close within the window range (0..1), None for a flat window."""
    highest = max(highs)
    lowest = min(lows)
    if highest == lowest:
        return None
    return (close - lowest) / (highest - lowest)


def calculate_stochastic(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    period: int = 6,
    slow_period: int = 3,
) -> list[float]:
    """Calculate slow Stochastic %K.

    Raw %K is ``(close - lowest low) / (highest high - lowest low) * 100``
    over `period` bars (50 for a flat window), then smoothed with an SMA of
    `slow_period`.

    Returns:
        List aligned with input. First (period + slow_period - 2) values are NaN.
    """
    if (
        not (len(highs) == len(lows) == len(closes))
        or period < 1
        or slow_period < 1
        or len(closes) < period
    ):
        return [float('nan')] * len(closes)

    raw = [float('nan')] * len(closes)
    for i in range(period - 1, len(closes)):
        position = _range_position(
            highs[i - period + 1:i + 1], lows[i - period + 1:i + 1], closes[i]
        )
        raw[i] = 50.0 if position is None else max(0.0, min(100.0, position * 100.0))

    valid = raw[period - 1:]
    smoothed = calculate_sma(valid, slow_period)
    return [float('nan')] * (period - 1) + smoothed


def calculate_williams_r(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    period: int = 14,
) -> list[float]:
    """Calculate Williams %R.

    %R = ``(highest high - close) / (highest high - lowest low) * -100``,
    ranging from -100 to 0 (-50 for a flat window).

    Returns:
        List aligned with input. First (period-1) values are NaN.
    """
    if not (len(highs) == len(lows) == len(closes)) or period < 1:
        return [float('nan')] * len(closes)

    result = [float('nan')] * min(period - 1, len(closes))
    for i in range(period - 1, len(closes)):
        position = _range_position(
            highs[i - period + 1:i + 1], lows[i - period + 1:i + 1], closes[i]
        )
        if position is None:
            result.append(-50.0)
        else:
            result.append(max(-100.0, min(0.0, (position - 1.0) * 100.0)))
    return result
