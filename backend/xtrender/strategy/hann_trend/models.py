"""Hann Trend strategy configuration."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HANN_TREND_STRATEGY_NAME = "hann_trend"


class HannTrendConfig(BaseModel):
    """Configuration for the Hann Trend (DMH + SAR) strategy."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    dmh_length: int = Field(30, gt=0)

    # Parabolic SAR acceleration
    sar_start: float = Field(0.02, gt=0)
    sar_increment: float = Field(0.03, gt=0)
    sar_max: float = Field(0.3, gt=0)

    swing_lookback: int = Field(5, gt=0)
    risk_reward: float = Field(2.0, gt=0)

    # Stop placed this many percent beyond the pullback extreme
    sl_buffer: float = Field(0.3, ge=0)

    @property
    def warmup(self) -> int:
        return 2 * self.dmh_length

    @property
    def required_bars(self) -> int:
        return self.warmup + 10
