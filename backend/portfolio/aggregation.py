"""Per-mode trade aggregation over persisted trade rows.

Rows are selected by mode, entry date cutoff, an optional symbol set and
the quality-score filters, then summarized into win/loss statistics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from xtrender.models import Mode, TradeRow

logger = logging.getLogger(__name__)

DAY = 86400
YEAR = 365 * DAY

# Lookback windows selectable for the portfolio views
TIME_RANGES: dict[str, int] = {
    "1m": 30 * DAY,
    "3m": 90 * DAY,
    "6m": 180 * DAY,
    "1y": YEAR,
    "2y": 2 * YEAR,
    "3y": 3 * YEAR,
    "4y": 4 * YEAR,
    "5y": 5 * YEAR,
    "10y": 10 * YEAR,
}

# Market cap filters are given in billions
MARKET_CAP_UNIT = 1e9


def cutoff_for_range(key: str, now: int) -> int:
    """Earliest entry date for a time range key; 0 (no cutoff) if unknown."""
    span = TIME_RANGES.get(key)
    return now - span if span else 0


class PerformanceFilters(BaseModel):
    """Quality-score constraints on trade rows.

    Every field is optional; ``None`` or 0 means no constraint. A row whose
    score is missing reads as 0 and is compared like any other value.
    """

    model_config = ConfigDict(frozen=True)

    min_winrate: float | None = None
    max_winrate: float | None = None
    min_rr: float | None = None
    max_rr: float | None = None
    min_avg_return: float | None = None
    max_avg_return: float | None = None
    min_market_cap: float | None = None

    def accepts(self, row: TradeRow) -> bool:
        if self.min_winrate and row.win_rate < self.min_winrate:
            return False
        if self.max_winrate and row.win_rate > self.max_winrate:
            return False
        if self.min_rr and row.risk_reward < self.min_rr:
            return False
        if self.max_rr and row.risk_reward > self.max_rr:
            return False
        if self.min_avg_return and row.avg_return < self.min_avg_return:
            return False
        if self.max_avg_return and row.avg_return > self.max_avg_return:
            return False
        if self.min_market_cap and row.market_cap < self.min_market_cap * MARKET_CAP_UNIT:
            return False
        return True


@dataclass
class ModeStats:
    trade_count: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    total_return: float = 0.0
    avg_return: float = 0.0
    risk_reward: float = 0.0


@dataclass
class ModeData:
    mode: str
    trades: list[TradeRow] = field(default_factory=list)
    stats: ModeStats = field(default_factory=ModeStats)


def risk_reward_ratio(wins: Sequence[float], losses: Sequence[float]) -> float:
    """Mean win over mean absolute loss; inf with wins only, 0 with neither."""
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = abs(sum(losses) / len(losses)) if losses else 0.0
    if avg_loss > 0:
        return avg_win / avg_loss
    return float("inf") if avg_win > 0 else 0.0


def mode_stats(rows: Sequence[TradeRow]) -> ModeStats:
    """Win/loss statistics over ``return_pct``; exactly 0 is neither."""
    count = len(rows)
    if count == 0:
        return ModeStats()
    wins = [r.return_pct for r in rows if r.return_pct > 0]
    losses = [r.return_pct for r in rows if r.return_pct < 0]
    total = sum(r.return_pct for r in rows)
    return ModeStats(
        trade_count=count,
        wins=len(wins),
        losses=len(losses),
        win_rate=len(wins) / count * 100,
        total_return=total,
        avg_return=total / count,
        risk_reward=risk_reward_ratio(wins, losses),
    )


def select_rows(
    rows: Iterable[TradeRow],
    mode: str,
    cutoff: int,
    filters: PerformanceFilters | None = None,
    symbols: set[str] | None = None,
) -> list[TradeRow]:
    """Rows of one mode entered at or after ``cutoff`` that pass the filters."""
    filters = filters or PerformanceFilters()
    return [
        r for r in rows
        if r.mode == mode
        and r.entry_date >= cutoff
        and (symbols is None or r.symbol in symbols)
        and filters.accepts(r)
    ]


def aggregate(
    rows: Sequence[TradeRow],
    cutoff: int,
    filters: PerformanceFilters | None = None,
    symbols: set[str] | None = None,
    modes: Sequence[str] | None = None,
) -> dict[str, ModeData]:
    """Aggregate trade rows per mode.

    Args:
        rows: Persisted trade rows across all modes and symbols.
        cutoff: Epoch seconds; rows entered earlier are ignored.
        filters: Quality-score constraints.
        symbols: Restrict to these symbols (None = all).
        modes: Modes to report (default: every B-Xtrender mode).
    """
    result: dict[str, ModeData] = {}
    for mode in modes or [m.value for m in Mode]:
        selected = select_rows(rows, mode, cutoff, filters, symbols)
        result[mode] = ModeData(mode=mode, trades=selected, stats=mode_stats(selected))
        logger.debug("%s: %d of %d rows selected", mode, len(selected), len(rows))
    return result
