"""Signal classification for strategy outputs."""

from xtrender.signals.classifier import (
    classify_aggressive,
    classify_bar_count,
    classify_defensive,
    classify_ditz,
    classify_quant,
    classify_signal,
    classify_trade_recency,
    classify_trader,
)

__all__ = [
    "classify_aggressive",
    "classify_bar_count",
    "classify_defensive",
    "classify_ditz",
    "classify_quant",
    "classify_signal",
    "classify_trade_recency",
    "classify_trader",
]
