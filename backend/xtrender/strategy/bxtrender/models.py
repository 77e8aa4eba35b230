"""B-Xtrender strategy configuration models.

Keys are accepted in snake_case or camelCase (``short_l1`` / ``shortL1``).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# T3 length of the signal line drawn over the short-term oscillator
SIGNAL_LINE_PERIOD = 5

# Extra bars required on top of the oscillator warm-up
WARMUP_MARGIN = 10


class BXtrenderConfig(BaseModel):
    """Oscillator lengths shared by every B-Xtrender mode.

    short = RSI(EMA(close, short_l1) - EMA(close, short_l2), short_l3) - 50
    long  = RSI(EMA(close, long_l1), long_l2) - 50
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    short_l1: int = Field(5, gt=0)
    short_l2: int = Field(20, gt=0)
    short_l3: int = Field(15, gt=0)
    long_l1: int = Field(20, gt=0)
    long_l2: int = Field(15, gt=0)

    @property
    def start_index(self) -> int:
        """First bar with a fully warmed-up oscillator."""
        return max(self.short_l2, self.long_l1) + self.short_l3

    @property
    def min_bars(self) -> int:
        return self.start_index + WARMUP_MARGIN


class QuantConfig(BXtrenderConfig):
    """Quant-family (quant, ditz, trader) configuration.

    Adds a moving-average trend filter for entries and a trailing stop.
    """

    ma_filter_on: bool = True
    ma_length: int = Field(200, gt=0)
    ma_type: Literal["EMA", "SMA"] = "EMA"
    tsl_enabled: bool = True
    tsl_percent: float = Field(20.0, gt=0, lt=100)

    def ma_filter_active(self, bar_count: int) -> bool:
        """MA filter switches itself off when history is too short for it."""
        return self.ma_filter_on and bar_count >= self.ma_length + self.short_l3 + WARMUP_MARGIN

    def start_index_for(self, ma_active: bool) -> int:
        if ma_active:
            return max(self.short_l2, self.long_l1, self.ma_length) + self.short_l3
        return self.start_index
