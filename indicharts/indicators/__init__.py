"""Indicator calculations (batch reference and incremental)."""

from indicharts.indicators.incremental import (
    IndicatorCalculator,
    IndicatorResult,
    RsiCalculator,
    StochasticCalculator,
    WilliamsRCalculator,
    get_calculator,
)
from indicharts.indicators.technical import (
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    calculate_williams_r,
)

__all__ = [
    "IndicatorCalculator",
    "IndicatorResult",
    "RsiCalculator",
    "StochasticCalculator",
    "WilliamsRCalculator",
    "calculate_rsi",
    "calculate_sma",
    "calculate_stochastic",
    "calculate_williams_r",
    "get_calculator",
]
