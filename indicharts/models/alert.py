"""Alert rule, state and event data models."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from indicharts.models.bar import Timeframe
from indicharts.models.indicator import IndicatorConfig

AlertMode = Literal["cross", "enter", "exit"]
CrossDirection = Literal["both", "up", "down"]
HysteresisMode = Literal["absolute", "fraction"]
TriggerType = Literal["cross_up", "cross_down", "enter_zone", "exit_zone"]
Zone = Literal["below", "between", "above"]

# Description marker of rules bulk-created from the watchlist
WATCHLIST_ALERT_PREFIX = "WATCHLIST:"


class AlertRule(BaseModel):
    """Represents a user-configured indicator threshold alert."""

    id: Optional[int] = Field(default=None, description="Local database ID")
    remote_id: Optional[int] = Field(default=None, description="Backend ID once synced")
    symbol: str = Field(..., min_length=1, description="Trading symbol")
    timeframe: Timeframe = Field(..., description="Bar timeframe")
    indicator: IndicatorConfig = Field(
        default_factory=IndicatorConfig, description="Indicator kind, period and params"
    )
    levels: list[float] = Field(
        default_factory=lambda: [30.0, 70.0], description="Threshold levels, ascending"
    )
    mode: AlertMode = Field(default="cross", description="cross | enter | exit")
    direction: CrossDirection = Field(
        default="both", description="Narrows cross mode to up or down crossings"
    )
    hysteresis: float = Field(default=0.5, description="Hysteresis margin")
    hysteresis_mode: HysteresisMode = Field(
        default="absolute", description="Margin in indicator units or as a fraction of the level span"
    )
    cooldown_sec: int = Field(default=600, description="Minimum seconds between fires")
    active: bool = Field(default=True, description="Whether the rule is evaluated")
    repeatable: bool = Field(default=True, description="Whether the rule may fire more than once")
    sound_enabled: bool = Field(default=True, description="Play a sound on delivery")
    custom_sound: Optional[str] = Field(default=None, description="Custom sound name")
    description: Optional[str] = Field(default=None, description="Free-form description")
    source: str = Field(default="custom", description="Origin of the rule (custom/watchlist)")
    created_at: datetime = Field(
        default_factory=datetime.now, description="Rule creation timestamp"
    )

    model_config = {"frozen": True}

    @property
    def is_watchlist_alert(self) -> bool:
        return bool(self.description) and self.description.lstrip().upper().startswith(WATCHLIST_ALERT_PREFIX)

    @property
    def is_pending(self) -> bool:
        """True while the backend does not know about this rule."""
        return self.remote_id is None

    @property
    def sorted_levels(self) -> list[float]:
        return sorted(self.levels)

    def margin(self) -> float:
        """Hysteresis margin in indicator units."""
        if self.hysteresis_mode == "absolute":
            return self.hysteresis
        levels = self.sorted_levels
        if len(levels) >= 2:
            span = levels[-1] - levels[0]
        else:
            span = abs(levels[0]) if levels else 0.0
        return self.hysteresis * span


class AlertState(BaseModel):
    """Per-rule evaluation state (exactly one per rule)."""

    rule_id: int = Field(..., description="Owning rule ID")
    last_value: Optional[float] = Field(default=None, description="Last indicator value")
    last_bar_ts: Optional[datetime] = Field(default=None, description="Last processed bar")
    last_fire_ts: Optional[datetime] = Field(default=None, description="Last firing time")
    last_side: Optional[Zone] = Field(default=None, description="Last latched zone")
    latches: list[Optional[bool]] = Field(
        default_factory=list,
        description="Per-level latch, True once past level+margin, False once past level-margin",
    )
    indicator_state: dict[str, Any] = Field(
        default_factory=dict, description="Smoothing accumulators for incremental resume"
    )

    model_config = {"frozen": True}

    @property
    def was_above_upper(self) -> bool:
        return bool(self.latches) and self.latches[-1] is True

    @property
    def was_below_lower(self) -> bool:
        return bool(self.latches) and self.latches[0] is False

    @property
    def au(self) -> Optional[float]:
        return self.indicator_state.get("au")

    @property
    def ad(self) -> Optional[float]:
        return self.indicator_state.get("ad")


class AlertEvent(BaseModel):
    """Append-only record of one rule firing."""

    id: Optional[int] = Field(default=None, description="Database ID")
    rule_id: int = Field(..., description="Rule that fired")
    ts: datetime = Field(..., description="Firing timestamp")
    indicator: str = Field(default="rsi", description="Indicator kind")
    value: float = Field(..., description="Indicator value at firing")
    level: Optional[float] = Field(default=None, description="Triggering level")
    side: TriggerType = Field(..., description="Trigger type")
    bar_ts: Optional[datetime] = Field(default=None, description="Source bar timestamp")
    symbol: str = Field(..., min_length=1, description="Trading symbol")
    message: str = Field(default="", description="Human-readable message")
    is_read: bool = Field(default=False, description="Whether the user has seen it")

    model_config = {"frozen": True}


class AlertTrigger(BaseModel):
    """Payload handed to the notification collaborator."""

    alert_id: int = Field(..., description="Rule ID")
    symbol: str = Field(..., description="Trading symbol")
    value: float = Field(..., description="Indicator value")
    level: Optional[float] = Field(default=None, description="Triggering level")
    type: TriggerType = Field(..., description="Trigger type")
    message: str = Field(..., description="Human-readable message")

    model_config = {"frozen": True}
