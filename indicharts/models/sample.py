"""IndicatorSample data model."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class IndicatorSample(BaseModel):
    """Most recent indicator computation for a symbol/timeframe/config.

    ``value`` stays None while the indicator is still warming up.
    """

    symbol: str = Field(..., min_length=1, description="Trading symbol")
    timeframe: str = Field(..., description="Bar timeframe")
    config_key: str = Field(..., description="IndicatorConfig.key")
    timestamp: datetime = Field(..., description="Timestamp of the last bar applied")
    value: Optional[float] = Field(default=None, description="Indicator value")
    close: float = Field(..., ge=0, description="Close of the last bar applied")
    state: dict[str, Any] = Field(default_factory=dict, description="Calculator state")

    model_config = {"frozen": True}
