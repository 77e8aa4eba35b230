"""Strategy protocol defining the interface all strategies must implement.

This module provides:
- IndicatorResult: Standard return type from a strategy run
- Strategy: Runtime-checkable Protocol that strategies must satisfy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from xtrender.models import (
    Bar,
    Marker,
    NextOpen,
    OscillatorSample,
    SignalFamily,
    Trade,
)

BarInput = Sequence[Bar | Mapping[str, Any] | None]


# ---------------------------------------------------------------------------
# IndicatorResult: standard return value from compute
# ---------------------------------------------------------------------------
@dataclass
class IndicatorResult:
    """Result of running a strategy over a bar series.

    Attributes:
        oscillators: Named oscillator series (e.g. 'short', 'long', 'signal').
        trades: Closed trades in order, plus at most one trailing open trade.
        markers: Chart markers for every executed entry and exit.
        overlays: Price-scale series (bands, basis lines, SAR).
        primary: Key of the oscillator used for signal classification.
    """

    oscillators: dict[str, list[OscillatorSample]] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)
    markers: list[Marker] = field(default_factory=list)
    overlays: dict[str, list[OscillatorSample]] = field(default_factory=dict)
    primary: str = ""

    @property
    def primary_series(self) -> list[OscillatorSample]:
        return self.oscillators.get(self.primary, [])

    @property
    def is_empty(self) -> bool:
        return not self.primary_series

    @property
    def open_trade(self) -> Trade | None:
        return next((t for t in self.trades if t.is_open), None)

    @property
    def closed_trades(self) -> list[Trade]:
        return [t for t in self.trades if not t.is_open]


# ---------------------------------------------------------------------------
# Strategy Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class Strategy(Protocol):
    """Protocol that all strategies must implement.

    A strategy is a pure function of its configuration and the bars it is
    given: no I/O, no wall-clock reads, no state kept between runs.
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier (e.g., 'quant')."""
        ...

    @property
    def required_bars(self) -> int:
        """Minimum number of valid bars; fewer yields an empty result."""
        ...

    @property
    def signal_family(self) -> SignalFamily:
        """Classifier family used to label this strategy's signals."""
        ...

    def compute(
        self,
        bars: BarInput,
        next_open: NextOpen | None = None,
    ) -> IndicatorResult:
        """Compute oscillators, trades and markers.

        Args:
            bars: Completed bars in ascending time order. Malformed entries
                are dropped before computation.
            next_open: Optional forming bar used to execute a signal raised
                on the last completed bar.

        Returns:
            IndicatorResult, empty when there is not enough data.
        """
        ...
