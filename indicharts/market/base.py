"""Base market data interface."""

from abc import ABC, abstractmethod

from indicharts.models import Bar


class BaseMarketData(ABC):
    """Abstract base class for price bar sources."""

    @abstractmethod
    def get_bars(self, symbol: str, timeframe: str, limit: int = 200) -> list[Bar]:
        """Get the most recent bars for a symbol.

        Args:
            symbol: Trading symbol.
            timeframe: Bar timeframe (1m, 5m, 15m, 1h, 4h, 1d).
            limit: Maximum number of bars.

        Returns:
            Bars ordered by timestamp, oldest first. Gaps are left as they are.

        Raises:
            BackendError: If the data source cannot be reached.
        """
        pass
