"""Bar (price observation) data model."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

Timeframe = Literal["1m", "5m", "15m", "1h", "4h", "1d"]

TIMEFRAMES: tuple[str, ...] = ("1m", "5m", "15m", "1h", "4h", "1d")

TIMEFRAME_SECONDS = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "1h": 3600,
    "4h": 14400,
    "1d": 86400,
}


class Bar(BaseModel):
    """Represents a single sampled price observation.

    Only ``close`` is required. Range oscillators (Stochastic, Williams %R)
    use ``high``/``low`` when present and fall back to ``close``.
    """

    timestamp: datetime = Field(..., description="Bar timestamp")
    close: float = Field(..., ge=0, allow_inf_nan=False, description="Closing price")
    high: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, description="High price")
    low: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, description="Low price")

    model_config = {"frozen": True}

    @property
    def bar_high(self) -> float:
        return self.high if self.high is not None else self.close

    @property
    def bar_low(self) -> float:
        return self.low if self.low is not None else self.close
