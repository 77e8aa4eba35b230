"""B-Xtrender signal engine.

Pure computation over already-fetched bars: smoothing primitives,
strategy state machines, trade ledgers, signal classification and
per-symbol quality scores. No I/O.

Usage:
    from xtrender import compute_indicator, classify_signal

    result = compute_indicator(bars, strategy="quant")
    signal = classify_signal("quant", result.oscillators, result.trades)
"""

from xtrender.metrics import QualityScores, calculate_metrics
from xtrender.pipeline import build_trade_rows, classify_signal, compute_indicator
from xtrender.strategy import IndicatorResult, list_strategies

__all__ = [
    "QualityScores",
    "calculate_metrics",
    "build_trade_rows",
    "classify_signal",
    "compute_indicator",
    "IndicatorResult",
    "list_strategies",
]
