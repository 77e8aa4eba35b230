"""Capital simulation over a filtered trade set.

Every trade is sized with the same fixed ``amount``. The capital needed
(``eigenkapital``) is the peak number of simultaneously open positions
times that amount; profits are realized per trade and rounded to cents.

Timestamps are epoch seconds. Open trades run until the explicitly
supplied ``now``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from portfolio.aggregation import DAY, YEAR, risk_reward_ratio
from xtrender.models import TradeRow

logger = logging.getLogger(__name__)

# Spans shorter than this are not annualized (CAGR falls back to rendite)
MIN_CAGR_YEARS = 0.1
# Equity curves longer than this many days are sampled more coarsely
MAX_CURVE_DAYS = 1000


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals with ties toward positive infinity."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def round_cents(value: float) -> float:
    return round_half_up(value, 2)


def max_concurrent(intervals: Iterable[tuple[int, int | None]]) -> int:
    """Peak number of overlapping (entry, exit) intervals.

    At equal timestamps exits are processed before entries, so a position
    closed at ``t`` and one opened at ``t`` never count together. An exit
    of None never releases its position.
    """
    events = []
    for entry, exit_ in intervals:
        events.append((entry, 1))
        if exit_ is not None:
            events.append((exit_, -1))
    events.sort()

    current = 0
    peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak


@dataclass
class SimulationTrade:
    symbol: str
    name: str
    entry_date: int
    exit_date: int | None
    entry_price: float
    exit_price: float | None
    profit: float
    received: float
    return_pct: float
    status: str

    def effective_exit(self, now: int) -> int:
        return self.exit_date or now


@dataclass
class EquityPoint:
    time: int
    value: float


@dataclass
class SimulationResult:
    trades: list[SimulationTrade] = field(default_factory=list)
    amount: float = 0.0
    eigenkapital: float = 0.0
    endkapital: float = 0.0
    gewinn: float = 0.0
    rendite: float = 0.0
    cagr: float = 0.0
    years: float = 0.0
    max_concurrent: int = 0
    open_count: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    avg_win_pct: float = 0.0
    avg_loss_pct: float = 0.0
    risk_reward: float = 0.0
    equity_curve: list[EquityPoint] = field(default_factory=list)

    @property
    def trade_count(self) -> int:
        return len(self.trades)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _to_sim_trade(row: TradeRow, amount: float) -> SimulationTrade:
    profit = round_cents(amount * (row.return_pct / 100))
    is_open = row.is_open
    return SimulationTrade(
        symbol=row.symbol,
        name=row.name,
        entry_date=row.entry_date,
        exit_date=None if is_open else row.exit_date,
        entry_price=row.entry_price,
        exit_price=row.current_price if is_open else row.exit_price,
        profit=profit,
        received=round_cents(amount + profit),
        return_pct=row.return_pct,
        status=row.status,
    )


def equity_curve(
    trades: Sequence[SimulationTrade],
    amount: float,
    eigenkapital: float,
    now: int,
) -> list[EquityPoint]:
    """Daily equity from the first entry to the last (effective) exit.

    Closed trades add their realized profit from the exit on; trades still
    running add their profit pro rata over entry..exit. Spans beyond
    MAX_CURVE_DAYS use a step of ceil(days / MAX_CURVE_DAYS) days. The
    end timestamp is always the last point.
    """
    if not trades:
        return []

    start = trades[0].entry_date
    end = max(t.effective_exit(now) for t in trades)
    days = math.ceil((end - start) / DAY)
    step = math.ceil(days / MAX_CURVE_DAYS) * DAY if days > MAX_CURVE_DAYS else DAY

    def value_at(ts: int) -> float:
        realized = 0.0
        unrealized = 0.0
        for t in trades:
            exit_ = t.effective_exit(now)
            if ts >= exit_:
                realized += t.profit
            elif ts >= t.entry_date:
                duration = exit_ - t.entry_date
                share = (ts - t.entry_date) / duration if duration > 0 else 0.0
                unrealized += amount * (t.return_pct / 100) * share
        return round_cents(eigenkapital + realized + unrealized)

    curve = [EquityPoint(ts, value_at(ts)) for ts in range(start, end + 1, step)]
    if not curve or curve[-1].time < end:
        curve.append(EquityPoint(end, value_at(end)))
    return curve


def simulate(
    rows: Sequence[TradeRow],
    amount: float,
    now: int,
) -> SimulationResult | None:
    """Simulate investing ``amount`` into every trade.

    Args:
        rows: Filtered trade rows (any order).
        amount: Position size per trade.
        now: Reference time; the exit of trades that are still open.

    Returns:
        SimulationResult, or None if ``amount <= 0`` or there are no rows.
    """
    if amount <= 0 or not rows:
        return None

    trades = sorted((_to_sim_trade(r, amount) for r in rows), key=lambda t: t.entry_date)
    open_count = sum(1 for r in rows if r.is_open)

    peak = max_concurrent((t.entry_date, t.effective_exit(now)) for t in trades)
    eigenkapital = peak * amount
    gewinn = round_cents(sum(t.profit for t in trades))
    endkapital = round_cents(eigenkapital + gewinn)
    rendite = gewinn / eigenkapital * 100 if eigenkapital > 0 else 0.0

    first = trades[0].entry_date
    last = max(t.effective_exit(now) for t in trades)
    years = (last - first) / YEAR if first > 0 else 0.0
    if eigenkapital > 0 and endkapital > 0 and years >= MIN_CAGR_YEARS:
        cagr = ((endkapital / eigenkapital) ** (1 / years) - 1) * 100
    else:
        cagr = rendite

    winners = [t for t in trades if t.profit > 0]
    losers = [t for t in trades if t.profit < 0]
    avg_win = _mean([t.profit for t in winners])
    avg_loss = abs(_mean([t.profit for t in losers]))

    logger.debug(
        "Simulated %d trades: peak %d positions, gewinn %.2f", len(trades), peak, gewinn
    )

    return SimulationResult(
        trades=trades,
        amount=amount,
        eigenkapital=eigenkapital,
        endkapital=endkapital,
        gewinn=gewinn,
        rendite=rendite,
        cagr=cagr,
        years=years,
        max_concurrent=peak,
        open_count=open_count,
        wins=len(winners),
        losses=len(losers),
        win_rate=len(winners) / len(trades) * 100,
        avg_win=avg_win,
        avg_loss=avg_loss,
        avg_win_pct=_mean([t.return_pct for t in winners]),
        avg_loss_pct=abs(_mean([t.return_pct for t in losers])),
        risk_reward=risk_reward_ratio(
            [t.profit for t in winners], [t.profit for t in losers]
        ),
        equity_curve=equity_curve(trades, amount, eigenkapital, now),
    )
