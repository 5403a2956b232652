"""Data models for Indicharts."""

from indicharts.models.alert import (
    WATCHLIST_ALERT_PREFIX,
    AlertEvent,
    AlertRule,
    AlertState,
    AlertTrigger,
)
from indicharts.models.bar import TIMEFRAMES, Bar
from indicharts.models.device import DeviceInfo, WatchlistItem
from indicharts.models.indicator import INDICATOR_SPECS, IndicatorConfig
from indicharts.models.sample import IndicatorSample

__all__ = [
    "AlertEvent",
    "AlertRule",
    "AlertState",
    "AlertTrigger",
    "Bar",
    "DeviceInfo",
    "INDICATOR_SPECS",
    "IndicatorConfig",
    "IndicatorSample",
    "TIMEFRAMES",
    "WATCHLIST_ALERT_PREFIX",
    "WatchlistItem",
]
