"""Stock pool optimizer.

Summarizes one mode's trade rows per symbol, filters the pool with locked
thresholds, and grid-searches threshold presets that maximize the
annualized return of the remaining stocks.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from statistics import median
from typing import Callable, Sequence

from portfolio.aggregation import (
    MARKET_CAP_UNIT,
    YEAR,
    ModeStats,
    mode_stats,
)
from portfolio.simulator import round_half_up
from xtrender.models import TradeRow

logger = logging.getLogger(__name__)

# Shortest span used to annualize returns
MIN_YEARS = 0.25


@dataclass
class StockSummary:
    """One symbol's aggregate for a mode; scores come from its first row."""

    symbol: str
    name: str = ""
    win_rate: float = 0.0
    risk_reward: float = 0.0
    avg_return: float = 0.0
    market_cap: float = 0.0
    total_trades: int = 0
    total_return: float = 0.0
    first_trade: int = 0
    last_trade: int = 0


def build_stock_pool(
    rows: Sequence[TradeRow], mode: str, cutoff: int
) -> list[StockSummary]:
    """Per-symbol summaries of ``mode`` rows entered at or after ``cutoff``."""
    pool: dict[str, StockSummary] = {}
    for r in rows:
        if r.mode != mode or r.entry_date < cutoff:
            continue
        s = pool.get(r.symbol)
        if s is None:
            pool[r.symbol] = StockSummary(
                symbol=r.symbol,
                name=r.name,
                win_rate=r.win_rate,
                risk_reward=r.risk_reward,
                avg_return=r.avg_return,
                market_cap=r.market_cap,
                total_trades=1,
                total_return=r.return_pct,
                first_trade=r.entry_date,
                last_trade=r.entry_date,
            )
            continue
        s.total_trades += 1
        s.total_return += r.return_pct
        s.first_trade = min(s.first_trade, r.entry_date)
        s.last_trade = max(s.last_trade, r.entry_date)
    return list(pool.values())


@dataclass(frozen=True)
class LockedFilters:
    """Locked slider thresholds; None leaves a dimension unconstrained.

    Unlike PerformanceFilters a locked 0 still applies.
    """

    trades: float | None = None
    winrate: float | None = None
    rr: float | None = None
    total_return: float | None = None
    market_cap: float | None = None

    def accepts(self, s: StockSummary) -> bool:
        if self.trades is not None and s.total_trades < self.trades:
            return False
        if self.winrate is not None and s.win_rate < self.winrate:
            return False
        if self.rr is not None and s.risk_reward < self.rr:
            return False
        if self.total_return is not None and s.total_return < self.total_return:
            return False
        if self.market_cap is not None and s.market_cap < self.market_cap * MARKET_CAP_UNIT:
            return False
        return True


def _median(values: Sequence[float]) -> float:
    return median(values) if values else 0.0


def _years_since(earliest: int, now: int) -> float:
    return max(MIN_YEARS, (now - earliest) / YEAR)


@dataclass
class OptimizationResult:
    filtered: list[StockSummary] = field(default_factory=list)
    medians: dict[str, float] = field(default_factory=dict)
    stats: ModeStats = field(default_factory=ModeStats)
    return_pa: float = 0.0

    @property
    def count(self) -> int:
        return len(self.filtered)


def optimize(
    pool: Sequence[StockSummary],
    rows: Sequence[TradeRow],
    mode: str,
    cutoff: int,
    locked: LockedFilters,
    now: int,
) -> OptimizationResult:
    """Apply locked thresholds and summarize the qualifying stocks.

    Trade statistics are recomputed over the qualifying symbols' rows,
    exactly as the per-mode aggregation does. ``return_pa`` is the mean
    summed return per stock divided by the years since the earliest trade.
    """
    filtered = [s for s in pool if locked.accepts(s)]
    medians = {
        "trades": _median([s.total_trades for s in filtered]),
        "winrate": _median([s.win_rate for s in filtered]),
        "rr": round_half_up(_median([s.risk_reward for s in filtered]), 1),
        "total_return": round_half_up(_median([s.total_return for s in filtered]), 0),
        "market_cap": round_half_up(
            _median([s.market_cap / MARKET_CAP_UNIT for s in filtered]), 0
        ),
    }

    qualifying = {s.symbol for s in filtered}
    matching = [
        r for r in rows
        if r.mode == mode and r.entry_date >= cutoff and r.symbol in qualifying
    ]
    stats = mode_stats(matching)

    return_pa = 0.0
    if filtered:
        years = _years_since(min(s.first_trade for s in filtered), now)
        return_pa = stats.total_return / len(filtered) / years

    return OptimizationResult(
        filtered=filtered, medians=medians, stats=stats, return_pa=return_pa
    )


# ---------------------------------------------------------------------------
# Preset grid search
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class _GridFilter:
    trades: float
    winrate: float
    rr: float
    total_return: float

    def accepts(self, s: StockSummary) -> bool:
        # 0 thresholds are unconstrained except for total return
        if self.trades and s.total_trades < self.trades:
            return False
        if self.winrate and s.win_rate < self.winrate:
            return False
        if self.rr and s.risk_reward < self.rr:
            return False
        if s.total_return < self.total_return:
            return False
        return True


@dataclass
class Preset:
    name: str
    description: str
    locked: LockedFilters
    count: int
    return_pa: float


@dataclass
class _PresetRule:
    name: str
    description: str
    min_stocks: int
    score: Callable[[list[StockSummary]], float]


def _percentiles(values: Sequence[float], pcts: Sequence[float]) -> list[float]:
    s = sorted(values)
    return [s[min(math.floor(p * len(s)), len(s) - 1)] for p in pcts]


def _unique(values: Sequence[float]) -> list[float]:
    return list(dict.fromkeys(round_half_up(v, 2) for v in values))


def suggest_presets(pool: Sequence[StockSummary], now: int) -> list[Preset]:
    """Grid-search four threshold presets over the stock pool.

    Returns an empty list for pools with fewer than two stocks. A preset is
    omitted when no grid point leaves enough stocks.
    """
    if len(pool) < 2:
        return []

    pool_years = _years_since(min(s.first_trade for s in pool), now)

    def return_pa(stocks: list[StockSummary]) -> float:
        return sum(s.total_return for s in stocks) / len(stocks) / pool_years

    def top_picks(stocks: list[StockSummary]) -> float:
        if len(stocks) < 5 or len(stocks) > max(15, math.floor(len(pool) * 0.25)):
            return -math.inf
        return return_pa(stocks)

    broad_min = max(5, math.floor(len(pool) * 0.4))

    def broad(stocks: list[StockSummary]) -> float:
        if len(stocks) < broad_min:
            return -math.inf
        return return_pa(stocks)

    def risk_adjusted(stocks: list[StockSummary]) -> float:
        if len(stocks) < 3:
            return -math.inf
        rets = [s.total_return / pool_years for s in stocks]
        avg = sum(rets) / len(rets)
        std = math.sqrt(sum((r - avg) ** 2 for r in rets) / len(rets)) or 1.0
        return return_pa(stocks) * (avg / std)

    rules = [
        _PresetRule(
            "Max Rendite", "Beste p.a. Rendite", 3,
            lambda stocks: return_pa(stocks) if len(stocks) >= 3 else -math.inf,
        ),
        _PresetRule("Top Picks", "Wenige Top-Performer", 5, top_picks),
        _PresetRule("Breit & Stabil", "Viele Aktien, gute p.a.", broad_min, broad),
        _PresetRule("Risiko-Optimiert", "Stabile p.a. Rendite", 3, risk_adjusted),
    ]

    trade_steps = _unique(
        [0, *_percentiles([s.total_trades for s in pool], [0.25, 0.5, 0.75])]
    )
    winrate_steps = _unique(
        [0, *_percentiles([s.win_rate for s in pool], [0.25, 0.5, 0.75, 0.9])]
    )
    rr_steps = _unique(
        [0, *_percentiles([s.risk_reward for s in pool], [0.25, 0.5, 0.75])]
    )
    return_steps = _unique([
        math.floor(min(0.0, *(s.total_return for s in pool))),
        0,
        *_percentiles([s.total_return for s in pool], [0.25, 0.5, 0.75]),
    ])
    grid = [
        _GridFilter(tr, wr, rr, ret)
        for tr in trade_steps
        for wr in winrate_steps
        for rr in rr_steps
        for ret in return_steps
    ]

    presets = []
    for rule in rules:
        best: _GridFilter | None = None
        best_score = -math.inf
        best_count = 0
        for f in grid:
            stocks = [s for s in pool if f.accepts(s)]
            if len(stocks) < rule.min_stocks:
                continue
            score = rule.score(stocks)
            if score > best_score:
                best, best_score, best_count = f, score, len(stocks)
        if best is None:
            logger.debug("Preset %s: no grid point qualifies", rule.name)
            continue

        locked = LockedFilters(
            trades=best.trades if best.trades > 0 else None,
            winrate=round_half_up(best.winrate, 1) if best.winrate > 0 else None,
            rr=round_half_up(best.rr, 1) if best.rr > 0 else None,
            total_return=round_half_up(best.total_return, 0) if best.total_return != 0 else None,
        )
        presets.append(Preset(
            name=rule.name,
            description=rule.description,
            locked=locked,
            count=best_count,
            return_pa=return_pa([s for s in pool if best.accepts(s)]),
        ))
    return presets
