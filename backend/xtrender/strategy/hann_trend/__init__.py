"""Hann Trend strategy package.

Importing this package triggers strategy registration via the
@register_strategy decorator on HannTrendStrategy.
"""

from xtrender.strategy.hann_trend.generator import HannTrendStrategy, sign_regime
from xtrender.strategy.hann_trend.models import (
    HANN_TREND_STRATEGY_NAME,
    HannTrendConfig,
)

__all__ = [
    "HannTrendStrategy",
    "HannTrendConfig",
    "HANN_TREND_STRATEGY_NAME",
    "sign_regime",
]
