"""Market data sources."""

from indicharts.market.base import BaseMarketData
from indicharts.market.yahoo import YahooMarketData, aggregate_bars

__all__ = ["BaseMarketData", "YahooMarketData", "aggregate_bars"]
