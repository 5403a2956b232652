"""Yahoo Finance chart endpoint as a bar source."""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

import requests

from indicharts.errors import BackendError
from indicharts.market.base import BaseMarketData
from indicharts.models import Bar
from indicharts.models.bar import TIMEFRAME_SECONDS

logger = logging.getLogger(__name__)

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"

# Yahoo has no 4h interval; 4h bars are built from 1h bars
YAHOO_INTERVALS = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "1h": "1h",
    "4h": "1h",
    "1d": "1d",
}

LOOKBACK_DAYS = {
    "1m": 5,
    "5m": 5,
    "15m": 5,
    "1h": 60,
    "4h": 730,
    "1d": 730,
}


def aggregate_bars(bars: list[Bar], seconds: int) -> list[Bar]:
    """Merge bars into buckets of `seconds`, aligned to the epoch.

    Each bucket keeps the highest high, the lowest low and the last close,
    stamped with the bucket start.
    """
    buckets: dict[int, list[Bar]] = {}
    for bar in sorted(bars, key=lambda b: b.timestamp):
        key = int(bar.timestamp.timestamp()) // seconds
        buckets.setdefault(key, []).append(bar)

    merged = []
    for key, group in sorted(buckets.items()):
        merged.append(Bar(
            timestamp=datetime.fromtimestamp(key * seconds),
            close=group[-1].close,
            high=max(b.bar_high for b in group),
            low=min(b.bar_low for b in group),
        ))
    return merged


class YahooMarketData(BaseMarketData):
    """Fetches bars from the public Yahoo Finance chart API."""

    HEADERS = {"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"}

    def __init__(
        self,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock

    def _fetch_chart(self, symbol: str, interval: str, days: int) -> dict:
        now = int(self.clock())
        params = {
            "interval": interval,
            "period1": now - days * 86400,
            "period2": now,
        }
        url = CHART_URL.format(symbol=symbol)
        try:
            resp = self.session.get(url, params=params, headers=self.HEADERS, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            raise BackendError(f"Yahoo chart request for {symbol} failed: {e}") from e
        except ValueError as e:
            raise BackendError(f"Yahoo chart response for {symbol} is not JSON") from e

        results = (data.get("chart") or {}).get("result") or []
        if not results:
            raise BackendError(f"No chart data for {symbol}")
        return results[0]

    @staticmethod
    def _parse_bars(result: dict) -> list[Bar]:
        timestamps = result.get("timestamp") or []
        quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        closes = quotes.get("close") or []
        highs = quotes.get("high") or []
        lows = quotes.get("low") or []

        bars = []
        for i, ts in enumerate(timestamps):
            close = closes[i] if i < len(closes) else None
            if close is None:
                continue
            bars.append(Bar(
                timestamp=datetime.fromtimestamp(ts),
                close=close,
                high=highs[i] if i < len(highs) else None,
                low=lows[i] if i < len(lows) else None,
            ))
        return bars

    def get_bars(self, symbol: str, timeframe: str, limit: int = 200) -> list[Bar]:
        if timeframe not in YAHOO_INTERVALS:
            raise ValueError(f"Unsupported timeframe: {timeframe}")

        result = self._fetch_chart(symbol, YAHOO_INTERVALS[timeframe], LOOKBACK_DAYS[timeframe])
        bars = self._parse_bars(result)
        if timeframe == "4h":
            bars = aggregate_bars(bars, TIMEFRAME_SECONDS["4h"])

        # Drop bars still forming; a bar is evaluated once, after it closes
        now = self.clock()
        seconds = TIMEFRAME_SECONDS[timeframe]
        bars = [b for b in bars if b.timestamp.timestamp() + seconds <= now]

        logger.debug("Fetched %d %s bars for %s", len(bars), timeframe, symbol)
        return bars[-limit:] if limit else bars
