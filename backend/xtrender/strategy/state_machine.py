"""Shared execution and regime/pullback state machine for strategies.

Execution model (all strategies):
- A signal raised on bar i fills at bar i+1's open; on the last bar it fills
  at NextOpen.open when the caller supplies one
- Each bar is stepped in two phases: the exit is evaluated against the
  state before any entry and finalized first, then the entry is evaluated

Regime/pullback machine (SL/TP strategies):

    IDLE --regime set--> TRACKING --pullback_start--> PULLBACK
    PULLBACK --(no confirm trigger) close beyond swing--> entry
    PULLBACK --pullback_end--> CONFIRM --close beyond swing--> entry
    any phase --regime flip--> TRACKING in the new direction

The concrete tests (zero-cross, band cross, SAR flip) are injected through
SetupTriggers so every strategy shares one implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from xtrender.models import (
    Bar,
    Direction,
    ExitReason,
    Marker,
    NextOpen,
    Trade,
)
from xtrender.models.signal import BRIGHT_GREEN, BRIGHT_RED, ORANGE
from xtrender.strategy.ledger import TradeLedger

logger = logging.getLogger(__name__)

# Setups whose stop distance is not above this share of the entry are skipped
MIN_RISK_PCT = 0.1


# ---------------------------------------------------------------------------
# Execution: next-bar fills, ledger and markers
# ---------------------------------------------------------------------------
class Execution:
    """Fill signals at the next bar's open and record trades and markers."""

    def __init__(
        self,
        times: Sequence[int],
        opens: Sequence[float],
        closes: Sequence[float],
        next_open: NextOpen | None = None,
    ):
        self.times = times
        self.opens = opens
        self.closes = closes
        self.next_open = next_open
        self.ledger = TradeLedger()
        self.markers: list[Marker] = []

    def next_fill(self, i: int) -> tuple[int, float] | None:
        """Time and price at which a signal raised on bar ``i`` executes."""
        if i + 1 < len(self.times) and self.opens[i + 1] > 0:
            return self.times[i + 1], self.opens[i + 1]
        if i + 1 >= len(self.times) and self.next_open is not None and self.next_open.open > 0:
            return self.next_open.time, self.next_open.open
        return None

    def enter_at(
        self,
        time: int,
        price: float,
        direction: Direction = Direction.LONG,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> bool:
        if not self.ledger.open(time, price, direction, stop_loss, take_profit):
            return False
        if direction == Direction.SHORT:
            self.markers.append(Marker.short(time, price))
        else:
            self.markers.append(Marker.buy(time, price))
        return True

    def exit_at(
        self,
        time: int,
        price: float,
        reason: ExitReason = ExitReason.SIGNAL,
        label: str = "SELL",
        color: str = BRIGHT_RED,
    ) -> Trade | None:
        trade = self.ledger.close(time, price, reason)
        if trade is not None:
            self.markers.append(Marker.exit(time, price, trade.return_pct, label, color))
        return trade

    def enter_next(self, i: int, direction: Direction = Direction.LONG) -> bool:
        """Enter at the fill following bar ``i``. False if there is none."""
        fill = self.next_fill(i)
        if fill is None:
            return False
        return self.enter_at(fill[0], fill[1], direction)

    def exit_next(
        self,
        i: int,
        reason: ExitReason = ExitReason.SIGNAL,
        label: str = "SELL",
        color: str = BRIGHT_RED,
    ) -> Trade | None:
        """Exit at the fill following bar ``i``. None if there is none."""
        fill = self.next_fill(i)
        if fill is None:
            return None
        return self.exit_at(fill[0], fill[1], reason, label, color)

    def current_price(self) -> float:
        """Price used to value an open position at the end of the run."""
        if self.next_open is not None and self.next_open.close > 0:
            return self.next_open.close
        return self.closes[-1] if self.closes else 0.0

    def finish(self) -> list[Trade]:
        return self.ledger.finalize(self.current_price())


# ---------------------------------------------------------------------------
# Regime / pullback state machine
# ---------------------------------------------------------------------------
class Phase(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    PULLBACK = "pullback"
    CONFIRM = "confirm"


def _keep_extreme(extreme: float, direction: Direction) -> float:
    return extreme


@dataclass
class SetupTriggers:
    """Strategy-specific predicates driving the pullback machine.

    Attributes:
        regime: Per-bar directional bias (+1, -1 or 0 for none yet).
        pullback_start: (i, direction) -> True when bar i retraces against
            the regime (arms the setup).
        pullback_end: (i, direction) -> True when the retracement is over.
            None for 3-phase machines that break out straight from PULLBACK.
        freeze_swing: (i, direction) -> swing level to use once the pullback
            starts. None keeps the tracked swing.
        stop_level: (pullback extreme, direction) -> stop-loss price.
    """

    regime: Sequence[int]
    pullback_start: Callable[[int, Direction], bool]
    pullback_end: Callable[[int, Direction], bool] | None = None
    freeze_swing: Callable[[int, Direction], float] | None = None
    stop_level: Callable[[float, Direction], float] = _keep_extreme


@dataclass(slots=True)
class _PendingEntry:
    direction: Direction
    extreme: float


class PullbackStateMachine:
    """Regime/pullback/breakout entries with SL/TP exits."""

    def __init__(
        self,
        triggers: SetupTriggers,
        risk_reward: float = 2.0,
        cooldown: int = 0,
        min_risk_pct: float = MIN_RISK_PCT,
    ):
        self.triggers = triggers
        self.risk_reward = risk_reward
        self.cooldown = cooldown
        self.min_risk_pct = min_risk_pct

    # -- helpers ------------------------------------------------------------

    def _fill(
        self,
        exe: Execution,
        time: int,
        price: float,
        pending: _PendingEntry,
    ) -> bool:
        d = pending.direction
        stop = self.triggers.stop_level(pending.extreme, d)
        risk = (price - stop) if d == Direction.LONG else (stop - price)
        if risk <= price * self.min_risk_pct / 100:
            logger.debug(
                "Skipped %s entry at %d: risk %.6f below minimum", d.name, time, risk
            )
            return False
        target = price + d.value * self.risk_reward * risk
        return exe.enter_at(time, price, d, stop_loss=stop, take_profit=target)

    @staticmethod
    def _check_exit(exe: Execution, bar: Bar, regime: int) -> None:
        pos = exe.ledger.position
        if pos is None:
            return
        if pos.direction == Direction.LONG:
            sl_hit = pos.stop_loss is not None and bar.low <= pos.stop_loss
            tp_hit = pos.take_profit is not None and bar.high >= pos.take_profit
        else:
            sl_hit = pos.stop_loss is not None and bar.high >= pos.stop_loss
            tp_hit = pos.take_profit is not None and bar.low <= pos.take_profit

        # Both hit on one bar -> SL (pessimistic)
        if sl_hit:
            exe.exit_at(bar.time, pos.stop_loss, ExitReason.SL, "SL", ORANGE)
        elif tp_hit:
            exe.exit_at(bar.time, pos.take_profit, ExitReason.TP, "TP", BRIGHT_GREEN)
        elif regime == -pos.direction.value:
            exe.exit_at(bar.time, bar.close, ExitReason.SIGNAL, "EXIT", BRIGHT_RED)

    # -- main loop ----------------------------------------------------------

    def run(
        self,
        bars: Sequence[Bar],
        start: int,
        next_open: NextOpen | None = None,
    ) -> Execution:
        """Step bars[start:] and return the execution record."""
        exe = Execution(
            [b.time for b in bars],
            [b.open for b in bars],
            [b.close for b in bars],
            next_open,
        )
        trig = self.triggers
        n = len(bars)

        phase = Phase.IDLE
        regime = 0
        swing = 0.0
        extreme = 0.0
        pending: _PendingEntry | None = None
        last_signal: int | None = None

        for i in range(start, n):
            bar = bars[i]

            if pending is not None:
                self._fill(exe, bar.time, bar.open, pending)
                pending = None

            bar_regime = trig.regime[i]

            # Phase 1: exit against the pre-entry state
            self._check_exit(exe, bar, bar_regime)

            # Phase 2: setup tracking and entry
            if bar_regime != regime:
                regime = bar_regime
                if regime == 0:
                    phase = Phase.IDLE
                else:
                    phase = Phase.TRACKING
                    swing = bar.high if regime > 0 else bar.low
                continue

            if phase == Phase.IDLE:
                continue

            d = Direction(regime)
            is_long = d == Direction.LONG

            if phase == Phase.TRACKING:
                swing = max(swing, bar.high) if is_long else min(swing, bar.low)
                if trig.pullback_start(i, d):
                    if trig.freeze_swing is not None:
                        swing = trig.freeze_swing(i, d)
                    extreme = bar.low if is_long else bar.high
                    phase = Phase.PULLBACK
                continue

            extreme = min(extreme, bar.low) if is_long else max(extreme, bar.high)

            if phase == Phase.PULLBACK and trig.pullback_end is not None:
                if trig.pullback_end(i, d):
                    phase = Phase.CONFIRM
                continue

            broke_out = bar.close > swing if is_long else bar.close < swing
            if not broke_out:
                continue

            cooling = (
                last_signal is not None and i - last_signal < self.cooldown
            )
            if exe.ledger.in_position:
                logger.debug("Breakout at %d ignored: position open", bar.time)
            elif cooling:
                logger.debug("Breakout at %d ignored: cooldown", bar.time)
            else:
                last_signal = i
                entry = _PendingEntry(direction=d, extreme=extreme)
                if i + 1 < n:
                    pending = entry
                elif next_open is not None and next_open.open > 0:
                    self._fill(exe, next_open.time, next_open.open, entry)

            phase = Phase.TRACKING
            swing = bar.high if is_long else bar.low

        return exe
