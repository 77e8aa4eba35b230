"""Smoothing primitives and auxiliary indicators for the signal engine.

Every function takes plain sequences of floats and returns a list of floats
of the same length. Insufficient history never raises: the output is filled
with a neutral value instead (0 for moving averages, 50 for RSI), so callers
can treat "not enough data" as an ordinary state.

EMA and RMA are seeded Pine-Script style with the simple average of the
first ``period`` values. They differ in what precedes the seed: EMA
back-fills the seed, RMA leaves zeros. RSI depends on that difference.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

RSI_NEUTRAL = 50.0

# Tillson T3 volume factor
T3_VOLUME_FACTOR = 0.7


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


# =============================================================================
# Moving averages
# =============================================================================

def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    The value at ``period - 1`` is the SMA of the first ``period`` values and
    every earlier index repeats that seed.

    Args:
        values: Sequence of values
        period: EMA period

    Returns:
        List of EMA values (all 0 when there are fewer than ``period`` values)
    """
    arr = _as_array(values)
    n = len(arr)
    if n < period:
        return [0.0] * n

    result = np.zeros(n, dtype=np.float64)
    result[period - 1] = arr[:period].sum() / period

    multiplier = 2.0 / (period + 1)
    for i in range(period, n):
        result[i] = (arr[i] - result[i - 1]) * multiplier + result[i - 1]

    result[: period - 1] = result[period - 1]
    return result.tolist()


def rma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Wilder's moving average (RMA, alpha = 1/period).

    Indices before the seed stay 0.

    Args:
        values: Sequence of values
        period: Smoothing period

    Returns:
        List of RMA values (all 0 when there are fewer than ``period`` values)
    """
    arr = _as_array(values)
    n = len(arr)
    if n < period:
        return [0.0] * n

    result = np.zeros(n, dtype=np.float64)
    result[period - 1] = arr[:period].sum() / period

    alpha = 1.0 / period
    for i in range(period, n):
        result[i] = alpha * arr[i] + (1 - alpha) * result[i - 1]

    return result.tolist()


def sma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate rolling Simple Moving Average.

    Indices before ``period - 1`` repeat the first full-window average.
    """
    arr = _as_array(values)
    n = len(arr)
    if n < period:
        return [0.0] * n

    result = np.zeros(n, dtype=np.float64)
    total = arr[:period].sum()
    result[period - 1] = total / period

    for i in range(period, n):
        total = total - arr[i - period] + arr[i]
        result[i] = total / period

    result[: period - 1] = result[period - 1]
    return result.tolist()


def t3(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Tillson T3 moving average.

    Six cascaded EMAs combined with coefficients derived from the volume
    factor b = 0.7:

    c1 = -b^3
    c2 = 3b^2 + 3b^3
    c3 = -6b^2 - 3b - 3b^3
    c4 = 1 + 3b + b^3 + 3b^2
    T3 = c1*e6 + c2*e5 + c3*e4 + c4*e3
    """
    b = T3_VOLUME_FACTOR
    c1 = -b * b * b
    c2 = 3 * b * b + 3 * b * b * b
    c3 = -6 * b * b - 3 * b - 3 * b * b * b
    c4 = 1 + 3 * b + b * b * b + 3 * b * b

    e1 = ema(values, period)
    e2 = ema(e1, period)
    e3 = ema(e2, period)
    e4 = ema(e3, period)
    e5 = ema(e4, period)
    e6 = ema(e5, period)

    combined = (
        c1 * _as_array(e6)
        + c2 * _as_array(e5)
        + c3 * _as_array(e4)
        + c4 * _as_array(e3)
    )
    return combined.tolist()


# =============================================================================
# Oscillators
# =============================================================================

def rsi(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate RSI with RMA-smoothed gains and losses.

    The output starts filled with 50. Gains and losses are measured from the
    second value on, so the first computed RSI sits at index ``period``.
    When the average loss is 0 the RSI is 100, or 50 if the average gain is
    0 as well.

    Args:
        values: Sequence of values
        period: RSI period

    Returns:
        List of RSI values in [0, 100]
    """
    arr = _as_array(values)
    n = len(arr)
    result = np.full(n, RSI_NEUTRAL, dtype=np.float64)
    if n < period + 1:
        return result.tolist()

    change = np.diff(arr)
    gains = np.where(change > 0, change, 0.0)
    losses = np.where(change < 0, -change, 0.0)

    avg_gain = rma(gains, period)
    avg_loss = rma(losses, period)

    for i in range(period, n):
        ag = avg_gain[i - 1]
        al = avg_loss[i - 1]
        if al == 0:
            result[i] = RSI_NEUTRAL if ag == 0 else 100.0
        else:
            result[i] = 100.0 - 100.0 / (1.0 + ag / al)

    return result.tolist()


# =============================================================================
# Range / volatility
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    """
    n = len(highs)
    if n == 0:
        return []

    result = [float(highs[0]) - float(lows[0])]
    for i in range(1, n):
        hl = highs[i] - lows[i]
        hc = abs(highs[i] - closes[i - 1])
        lc = abs(lows[i] - closes[i - 1])
        result.append(float(max(hl, hc, lc)))

    return result


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> list[float]:
    """Calculate Average True Range (RMA of the true range)."""
    return rma(true_range(highs, lows, closes), period)


def highest(values: Sequence[float], period: int) -> list[float]:
    """Rolling maximum over ``period`` values (shorter window at the start)."""
    arr = _as_array(values)
    return [float(arr[max(0, i - period + 1) : i + 1].max()) for i in range(len(arr))]


def lowest(values: Sequence[float], period: int) -> list[float]:
    """Rolling minimum over ``period`` values (shorter window at the start)."""
    arr = _as_array(values)
    return [float(arr[max(0, i - period + 1) : i + 1].min()) for i in range(len(arr))]


# =============================================================================
# Volume flow
# =============================================================================

def money_flow_ratio(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    volumes: Sequence[float],
    window: int,
) -> list[float]:
    """
    Calculate a Chaikin-style money flow ratio in [-1, 1].

    CLV = ((C - L) - (H - C)) / (H - L), 0 for zero-range bars.
    ratio = sum(CLV * vol, window) / sum(|CLV * vol|, window)
    """
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    v = _as_array(volumes)

    span = h - l
    safe_span = np.where(span > 0, span, 1.0)
    clv = np.where(span > 0, ((c - l) - (h - c)) / safe_span, 0.0)
    flow = clv * v
    magnitude = np.abs(flow)

    result = []
    for i in range(len(flow)):
        lo = max(0, i - window + 1)
        denom = magnitude[lo : i + 1].sum()
        result.append(float(flow[lo : i + 1].sum() / denom) if denom > 0 else 0.0)
    return result


# =============================================================================
# Directional movement / trend
# =============================================================================

def directional_movement(
    highs: Sequence[float],
    lows: Sequence[float],
) -> list[float]:
    """
    Calculate Wilder's net directional movement (+DM - -DM) per bar.

    The first bar has no predecessor and yields 0.
    """
    n = len(highs)
    result = [0.0] * n
    for i in range(1, n):
        up = highs[i] - highs[i - 1]
        down = lows[i - 1] - lows[i]
        plus_dm = up if up > down and up > 0 else 0.0
        minus_dm = down if down > up and down > 0 else 0.0
        result[i] = float(plus_dm - minus_dm)
    return result


def hann_fir(values: Sequence[float], period: int) -> list[float]:
    """
    Apply a Hann-window FIR filter.

    Coefficients c_k = 1 - cos(k * 2*pi / (period + 1)) for k = 1..period,
    applied to the most recent ``period`` values and normalised by their sum.
    Indices before ``period - 1`` are 0.
    """
    arr = _as_array(values)
    n = len(arr)
    if n < period:
        return [0.0] * n

    coeffs = np.array(
        [1 - math.cos(k * 2 * math.pi / (period + 1)) for k in range(1, period + 1)],
        dtype=np.float64,
    )
    norm = coeffs.sum()

    result = np.zeros(n, dtype=np.float64)
    for i in range(period - 1, n):
        # coeffs[0] weights the newest value
        window = arr[i - period + 1 : i + 1][::-1]
        result[i] = float(np.dot(coeffs, window) / norm)
    return result.tolist()


def parabolic_sar(
    highs: Sequence[float],
    lows: Sequence[float],
    start: float = 0.02,
    increment: float = 0.02,
    maximum: float = 0.2,
) -> tuple[list[float], list[int]]:
    """
    Calculate Wilder's Parabolic SAR.

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        start: Initial acceleration factor
        increment: Acceleration step on each new extreme
        maximum: Acceleration cap

    Returns:
        Tuple of (sar levels, trend direction) where direction is +1 while the
        SAR sits below price and -1 while it sits above.
    """
    n = len(highs)
    if n == 0:
        return [], []

    sar_values = [float(lows[0])] * n
    directions = [1] * n

    rising = True
    sar = float(lows[0])
    extreme = float(highs[0])
    af = start

    for i in range(1, n):
        sar = sar + af * (extreme - sar)
        if rising:
            sar = min(sar, lows[i - 1], lows[i - 2] if i >= 2 else lows[i - 1])
            if lows[i] < sar:
                rising = False
                sar = extreme
                extreme = float(lows[i])
                af = start
            elif highs[i] > extreme:
                extreme = float(highs[i])
                af = min(af + increment, maximum)
        else:
            sar = max(sar, highs[i - 1], highs[i - 2] if i >= 2 else highs[i - 1])
            if highs[i] > sar:
                rising = True
                sar = extreme
                extreme = float(highs[i])
                af = start
            elif lows[i] < extreme:
                extreme = float(lows[i])
                af = min(af + increment, maximum)

        sar_values[i] = float(sar)
        directions[i] = 1 if rising else -1

    return sar_values, directions
