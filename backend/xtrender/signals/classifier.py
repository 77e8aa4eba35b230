"""Discrete signal classification (BUY / HOLD / SELL / WAIT).

Two families:
- bar count: consecutive trailing oscillator bars sharing the last bar's
  sign (Smart Money Flow, Hann Trend)
- trade recency: bars since the open trade's entry or the last closed
  trade's exit (B-Xtrender modes)

A signal is "fresh" (BUY/SELL) for the last two bars, then turns into
HOLD/WAIT.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from xtrender.models import OscillatorSample, SignalLabel, SignalResult, Trade
from xtrender.strategy import get_strategy_class

logger = logging.getLogger(__name__)

# Bars a BUY/SELL stays fresh (0 = last bar, 1 = second to last)
FRESH_BARS = 1
# Consecutive same-sign bars still reported as BUY/SELL
FRESH_STREAK = 2

BAR_COUNT_MIN_SAMPLES = 2
DEFENSIVE_MIN_SAMPLES = 4
AGGRESSIVE_MIN_SAMPLES = 4
QUANT_MIN_SAMPLES = 2
DITZ_MIN_SAMPLES = 3

_WAIT = SignalResult(signal=SignalLabel.WAIT, bars=0)


def _bars_since(samples: Sequence[OscillatorSample], time: int) -> int | None:
    """Distance from the last sample back to ``time``; None if absent."""
    last = len(samples) - 1
    for i in range(last, -1, -1):
        if samples[i].time == time:
            return last - i
    return None


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------
def classify_bar_count(
    samples: Sequence[OscillatorSample],
    min_samples: int = BAR_COUNT_MIN_SAMPLES,
) -> SignalResult:
    """Classify by the length of the trailing same-sign streak."""
    if len(samples) < min_samples:
        return _WAIT

    positive = samples[-1].value > 0
    streak = 0
    for sample in reversed(samples):
        if (sample.value > 0) != positive:
            break
        streak += 1

    if positive:
        label = SignalLabel.BUY if streak <= FRESH_STREAK else SignalLabel.HOLD
    else:
        label = SignalLabel.SELL if streak <= FRESH_STREAK else SignalLabel.WAIT
    return SignalResult(signal=label, bars=streak)


def classify_trade_recency(
    samples: Sequence[OscillatorSample],
    trades: Sequence[Trade],
    min_samples: int,
) -> SignalResult:
    """Classify by the age of the most recent entry or exit."""
    if len(samples) < min_samples:
        return _WAIT

    open_trade = next((t for t in trades if t.is_open), None)
    if open_trade is not None:
        if not open_trade.entry_date:
            return SignalResult(signal=SignalLabel.HOLD, bars=1)
        bars = _bars_since(samples, open_trade.entry_date) or 0
        label = SignalLabel.BUY if bars <= FRESH_BARS else SignalLabel.HOLD
        return SignalResult(signal=label, bars=bars)

    closed = [t for t in trades if not t.is_open and t.exit_date]
    if not closed:
        return _WAIT

    bars = _bars_since(samples, closed[-1].exit_date)
    if bars is not None and bars <= FRESH_BARS:
        return SignalResult(signal=SignalLabel.SELL, bars=bars)
    return SignalResult(signal=SignalLabel.WAIT, bars=bars or 0)


# ---------------------------------------------------------------------------
# Per-mode classifiers
# ---------------------------------------------------------------------------
def classify_defensive(
    short: Sequence[OscillatorSample], trades: Sequence[Trade]
) -> SignalResult:
    return classify_trade_recency(short, trades, DEFENSIVE_MIN_SAMPLES)


def classify_aggressive(
    short: Sequence[OscillatorSample], trades: Sequence[Trade]
) -> SignalResult:
    return classify_trade_recency(short, trades, AGGRESSIVE_MIN_SAMPLES)


def classify_quant(
    short: Sequence[OscillatorSample],
    long: Sequence[OscillatorSample],
    trades: Sequence[Trade],
) -> SignalResult:
    """Both histograms need QUANT_MIN_SAMPLES; bars are counted on short."""
    if len(long) < QUANT_MIN_SAMPLES:
        return _WAIT
    return classify_trade_recency(short, trades, QUANT_MIN_SAMPLES)


def classify_ditz(
    signal: Sequence[OscillatorSample], trades: Sequence[Trade]
) -> SignalResult:
    return classify_trade_recency(signal, trades, DITZ_MIN_SAMPLES)


def classify_trader(
    signal: Sequence[OscillatorSample], trades: Sequence[Trade]
) -> SignalResult:
    """Trader mode shares Ditz's classification."""
    return classify_ditz(signal, trades)


# ---------------------------------------------------------------------------
# Dispatch by strategy name
# ---------------------------------------------------------------------------
def classify_signal(
    strategy: str,
    oscillators: Mapping[str, Sequence[OscillatorSample]],
    trades: Sequence[Trade] = (),
) -> SignalResult:
    """Classify a strategy's latest signal from its oscillators and trades.

    Args:
        strategy: Registered strategy name.
        oscillators: Oscillator series as returned in IndicatorResult.
        trades: Trade ledger of the same run (may be empty).

    Raises:
        KeyError: If the strategy name is not registered.
    """
    if strategy == "defensive":
        return classify_defensive(oscillators.get("short", []), trades)
    if strategy == "aggressive":
        return classify_aggressive(oscillators.get("short", []), trades)
    if strategy == "quant":
        return classify_quant(
            oscillators.get("short", []), oscillators.get("long", []), trades
        )
    if strategy == "ditz":
        return classify_ditz(oscillators.get("signal", []), trades)
    if strategy == "trader":
        return classify_trader(oscillators.get("signal", []), trades)

    # Bar-count strategies classify on their primary oscillator
    cls = get_strategy_class(strategy)
    samples = oscillators.get(cls.primary_oscillator, [])
    logger.debug("Classifying %s on %d %s samples", strategy, len(samples), cls.primary_oscillator)
    return classify_bar_count(samples)
