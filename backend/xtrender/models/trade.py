"""Trade and persisted trade-row models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class Direction(int, Enum):
    """Trade direction."""

    LONG = 1
    SHORT = -1


class ExitReason(str, Enum):
    """Why a position was closed."""

    SIGNAL = "SIGNAL"
    TSL = "TSL"  # Trailing stop loss
    SL = "SL"
    TP = "TP"


class Mode(str, Enum):
    """Persisted B-Xtrender strategy modes."""

    DEFENSIVE = "defensive"
    AGGRESSIVE = "aggressive"
    QUANT = "quant"
    DITZ = "ditz"
    TRADER = "trader"


def return_pct(entry_price: float, exit_price: float, direction: Direction = Direction.LONG) -> float:
    """Percentage return of a position; sign-inverted for shorts."""
    if entry_price <= 0:
        return 0.0
    if direction == Direction.SHORT:
        return (entry_price - exit_price) / entry_price * 100
    return (exit_price - entry_price) / entry_price * 100


class Trade(BaseModel):
    """A closed or open trade produced by a strategy run.

    Open trades have no exit and carry the unrealized return against
    ``current_price``.
    """

    model_config = ConfigDict(frozen=True)

    entry_date: int
    entry_price: float
    exit_date: int | None = None
    exit_price: float | None = None
    current_price: float | None = None
    return_pct: float = 0.0
    is_open: bool = False
    direction: Direction = Direction.LONG
    exit_reason: ExitReason | None = None
    stop_loss: float | None = None
    take_profit: float | None = None

    @model_validator(mode="after")
    def _check_open_state(self):
        if self.is_open != (self.exit_date is None):
            raise ValueError(
                f"is_open={self.is_open} contradicts exit_date={self.exit_date}"
            )
        return self


class TradeRow(BaseModel):
    """Persisted per-mode trade row consumed by the portfolio layer.

    ``win_rate``, ``risk_reward``, ``avg_return`` and ``market_cap`` are the
    symbol's quality scores at write time. They are filter predicates only
    and unrelated to this row's own ``return_pct``.
    """

    model_config = ConfigDict(frozen=True)

    mode: str
    symbol: str
    name: str = ""
    entry_date: int
    entry_price: float = 0.0
    exit_date: int | None = None
    exit_price: float | None = None
    current_price: float | None = None
    return_pct: float = 0.0
    status: str = "CLOSED"
    direction: Direction = Direction.LONG
    win_rate: float = 0.0
    risk_reward: float = 0.0
    avg_return: float = 0.0
    market_cap: float = 0.0

    @field_validator(
        "return_pct", "win_rate", "risk_reward", "avg_return", "market_cap",
        mode="before",
    )
    @classmethod
    def _null_as_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Direction[value.upper()]
        return value

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN" or self.exit_date is None
