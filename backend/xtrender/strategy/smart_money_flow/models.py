"""Smart Money Flow strategy configuration."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SMART_MONEY_FLOW_STRATEGY_NAME = "smart_money_flow"


class SmartMoneyFlowConfig(BaseModel):
    """Configuration for the Smart Money Flow strategy."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    trend_length: int = Field(34, gt=0)
    basis_smooth: int = Field(3, gt=0)
    flow_window: int = Field(24, gt=0)
    flow_smooth: int = Field(5, gt=0)
    flow_boost: float = Field(1.2, gt=0)
    atr_length: int = Field(14, gt=0)

    # ATR band multiplier range, widened by flow strength
    band_tightness: float = Field(0.9, ge=0)
    band_expansion: float = Field(2.2, ge=0)

    # Minimum bars between two entry signals
    dot_cooldown: int = Field(12, ge=0)
    risk_reward: float = Field(2.0, gt=0)

    @property
    def warmup(self) -> int:
        return 3 * self.trend_length

    @property
    def required_bars(self) -> int:
        return self.warmup + 6
