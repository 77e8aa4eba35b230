"""Data models for bars, trades, oscillators and signals."""

from xtrender.models.bar import Bar, NextOpen, clean_bars
from xtrender.models.signal import (
    Marker,
    OscillatorSample,
    SignalFamily,
    SignalLabel,
    SignalResult,
    histogram_color,
)
from xtrender.models.trade import (
    Direction,
    ExitReason,
    Mode,
    Trade,
    TradeRow,
    return_pct,
)

__all__ = [
    "Bar",
    "NextOpen",
    "clean_bars",
    "Marker",
    "OscillatorSample",
    "SignalFamily",
    "SignalLabel",
    "SignalResult",
    "histogram_color",
    "Direction",
    "ExitReason",
    "Mode",
    "Trade",
    "TradeRow",
    "return_pct",
]
