"""Indicator configuration: a kind tag plus kind-specific parameters."""

from typing import Literal, NamedTuple

from pydantic import BaseModel, Field

IndicatorKind = Literal["rsi", "stoch", "williams"]


class IndicatorSpec(NamedTuple):
    """Static facts about one indicator kind."""

    name: str
    display_name: str
    default_period: int
    default_levels: tuple[float, ...]
    min_value: float
    max_value: float
    default_params: dict


INDICATOR_SPECS: dict[str, IndicatorSpec] = {
    "rsi": IndicatorSpec("RSI", "RSI (Relative Strength Index)", 14, (30.0, 70.0), 0.0, 100.0, {}),
    "stoch": IndicatorSpec(
        "STOCH", "Stochastic Oscillator", 6, (20.0, 80.0), 0.0, 100.0,
        {"slow_period": 3, "d_period": 3},
    ),
    "williams": IndicatorSpec("WPR", "Williams %R", 14, (-80.0, -20.0), -100.0, 0.0, {}),
}

# Alternate spellings accepted from users and from the sync backend
KIND_ALIASES = {
    "rsi": "rsi",
    "stoch": "stoch",
    "stochastic": "stoch",
    "williams": "williams",
    "wpr": "williams",
    "willr": "williams",
}


def normalize_kind(value: str) -> str:
    """Map an indicator name or alias to its canonical kind tag.

    Unknown names are returned lower-cased so validation can report them.
    """
    key = value.strip().lower()
    return KIND_ALIASES.get(key, key)


class IndicatorConfig(BaseModel):
    """Identifies an indicator computation (kind + period + parameters)."""

    kind: IndicatorKind = Field(default="rsi", description="Indicator kind tag")
    period: int = Field(default=14, description="Lookback period")
    params: dict[str, int | float] = Field(
        default_factory=dict, description="Kind-specific parameters"
    )

    model_config = {"frozen": True}

    @property
    def spec(self) -> IndicatorSpec:
        return INDICATOR_SPECS[self.kind]

    def resolved_params(self) -> dict:
        """Kind defaults overlaid with the explicit parameters."""
        merged = dict(self.spec.default_params)
        merged.update(self.params)
        return merged

    @property
    def key(self) -> str:
        """Stable key shared by rules that can reuse one computation."""
        params = ",".join(f"{k}={v}" for k, v in sorted(self.resolved_params().items()))
        return f"{self.kind}:{self.period}:{params}"
