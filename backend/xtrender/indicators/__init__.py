"""Technical indicators (pure math, no I/O)."""

from xtrender.indicators.indicators import (
    RSI_NEUTRAL,
    ema,
    rma,
    sma,
    t3,
    rsi,
    atr,
    true_range,
    highest,
    lowest,
    money_flow_ratio,
    directional_movement,
    hann_fir,
    parabolic_sar,
)

__all__ = [
    "RSI_NEUTRAL",
    "ema",
    "rma",
    "sma",
    "t3",
    "rsi",
    "atr",
    "true_range",
    "highest",
    "lowest",
    "money_flow_ratio",
    "directional_movement",
    "hann_fir",
    "parabolic_sar",
]
