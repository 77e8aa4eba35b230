"""Trade ledger: turns entry/exit executions into Trade records.

Rules:
- At most one open position; an entry while a position is open is rejected
- Closed trades come out in execution order
- The unmatched entry at the end becomes the open trade, valued at the
  caller's current price
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from xtrender.models import Direction, ExitReason, Trade, return_pct

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Position:
    """The currently open position."""

    entry_date: int
    entry_price: float
    direction: Direction = Direction.LONG
    stop_loss: float | None = None
    take_profit: float | None = None


class TradeLedger:
    """Collect trades for one (symbol, strategy) stream."""

    def __init__(self) -> None:
        self._trades: list[Trade] = []
        self._position: Position | None = None

    @property
    def position(self) -> Position | None:
        return self._position

    @property
    def in_position(self) -> bool:
        return self._position is not None

    @property
    def trades(self) -> list[Trade]:
        """Closed trades recorded so far."""
        return list(self._trades)

    @property
    def last_trade(self) -> Trade | None:
        return self._trades[-1] if self._trades else None

    def open(
        self,
        time: int,
        price: float,
        direction: Direction = Direction.LONG,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> bool:
        """Open a position. Returns False if one is already open."""
        if self._position is not None:
            logger.debug(
                "Entry at %d rejected: position open since %d",
                time, self._position.entry_date,
            )
            return False
        self._position = Position(
            entry_date=time,
            entry_price=price,
            direction=direction,
            stop_loss=stop_loss,
            take_profit=take_profit,
        )
        return True

    def close(
        self,
        time: int,
        price: float,
        reason: ExitReason = ExitReason.SIGNAL,
    ) -> Trade | None:
        """Close the open position and record the trade."""
        pos = self._position
        if pos is None:
            return None
        trade = Trade(
            entry_date=pos.entry_date,
            entry_price=pos.entry_price,
            exit_date=time,
            exit_price=price,
            return_pct=return_pct(pos.entry_price, price, pos.direction),
            is_open=False,
            direction=pos.direction,
            exit_reason=reason,
            stop_loss=pos.stop_loss,
            take_profit=pos.take_profit,
        )
        self._trades.append(trade)
        self._position = None
        logger.debug(
            "Closed %s trade %d -> %d (%s) %+.2f%%",
            pos.direction.name, pos.entry_date, time, reason.value, trade.return_pct,
        )
        return trade

    def finalize(self, current_price: float) -> list[Trade]:
        """Return all trades, the open position valued at ``current_price``."""
        trades = list(self._trades)
        pos = self._position
        if pos is not None:
            trades.append(
                Trade(
                    entry_date=pos.entry_date,
                    entry_price=pos.entry_price,
                    current_price=current_price,
                    return_pct=return_pct(pos.entry_price, current_price, pos.direction),
                    is_open=True,
                    direction=pos.direction,
                    stop_loss=pos.stop_loss,
                    take_profit=pos.take_profit,
                )
            )
        return trades
