"""Oscillator, chart marker and signal label models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

# Histogram palette
BRIGHT_GREEN = "#00FF00"
DARK_GREEN = "#228B22"
BRIGHT_RED = "#FF0000"
DARK_RED = "#8B0000"
ORANGE = "#FFA500"
YELLOW = "#FFD700"
BLUE = "#2196F3"


class SignalLabel(str, Enum):
    """Discrete signal shown for a symbol."""

    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    WAIT = "WAIT"
    NO_DATA = "NO_DATA"


class SignalFamily(str, Enum):
    """How a strategy's signal label is derived."""

    BAR_COUNT = "bar_count"
    TRADE_RECENCY = "trade_recency"


class SignalResult(BaseModel):
    """Signal label plus its age in bars."""

    model_config = ConfigDict(frozen=True)

    signal: SignalLabel
    bars: int = 0


class OscillatorSample(BaseModel):
    """One oscillator (or overlay) value aligned with a bar."""

    model_config = ConfigDict(frozen=True)

    time: int
    value: float
    color: str = ""


def histogram_color(value: float, prev: float) -> str:
    """Four-shade histogram color: sign picks the hue, slope the shade."""
    if value > 0:
        return BRIGHT_GREEN if value > prev else DARK_GREEN
    return BRIGHT_RED if value > prev else DARK_RED


def _format_return(pct: float) -> str:
    return f"+{pct:.1f}%" if pct >= 0 else f"{pct:.1f}%"


class Marker(BaseModel):
    """Chart annotation for an executed entry or exit."""

    model_config = ConfigDict(frozen=True)

    time: int
    position: str
    color: str
    shape: str
    text: str

    @classmethod
    def buy(cls, time: int, price: float) -> Marker:
        return cls(
            time=time,
            position="belowBar",
            color=BRIGHT_GREEN,
            shape="arrowUp",
            text=f"BUY ${price:.2f}",
        )

    @classmethod
    def short(cls, time: int, price: float) -> Marker:
        return cls(
            time=time,
            position="aboveBar",
            color=BRIGHT_RED,
            shape="arrowDown",
            text=f"SHORT ${price:.2f}",
        )

    @classmethod
    def exit(
        cls,
        time: int,
        price: float,
        pct: float,
        label: str = "SELL",
        color: str = BRIGHT_RED,
    ) -> Marker:
        return cls(
            time=time,
            position="aboveBar",
            color=color,
            shape="arrowDown",
            text=f"{label} ${price:.2f} {_format_return(pct)}",
        )
