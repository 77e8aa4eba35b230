"""Batch statistics over strategy runs on many symbols.

Computes overall metrics, per-symbol breakdowns, the compounded
portfolio return on invested capital and a fixed-size position
simulation.

Conventions (differ from the per-mode aggregation):
  - a trade with return_pct >= 0 is a win
  - risk/reward is 0 when there are no losses
  - drawdown is measured on equity compounded from 100
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from portfolio.simulator import max_concurrent
from xtrender.models import Direction, Trade
from xtrender.strategy import IndicatorResult

logger = logging.getLogger(__name__)

DEFAULT_POSITION_SIZE = 500.0
START_EQUITY = 100.0


@dataclass(frozen=True)
class SymbolTrade:
    symbol: str
    trade: Trade

    @property
    def entry_time(self) -> int:
        return self.trade.entry_date

    @property
    def return_pct(self) -> float:
        return self.trade.return_pct


def collect_trades(results: Mapping[str, IndicatorResult]) -> list[SymbolTrade]:
    """Flatten per-symbol strategy results into one trade list."""
    return [
        SymbolTrade(symbol, t)
        for symbol, result in results.items()
        for t in result.trades
    ]


@dataclass
class BatchMetrics:
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    risk_reward: float = 0.0
    total_return: float = 0.0
    avg_return: float = 0.0
    max_drawdown: float = 0.0
    net_profit: float = 0.0


@dataclass
class SymbolMetrics:
    symbol: str
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    risk_reward: float = 0.0
    total_return: float = 0.0


@dataclass
class PortfolioReturn:
    position_size: float = DEFAULT_POSITION_SIZE
    max_parallel: int = 0
    required_capital: float = 0.0
    total_profit: float = 0.0
    portfolio_return: float = 0.0


@dataclass
class PositionSimulation:
    position_size: float = DEFAULT_POSITION_SIZE
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    open_count: int = 0
    win_rate: float = 0.0
    max_parallel: int = 0
    required_capital: float = 0.0
    total_profit: float = 0.0
    roi: float = 0.0


@dataclass
class BatchResult:
    """Complete batch statistics."""

    trades: list[SymbolTrade] = field(default_factory=list)
    metrics: BatchMetrics = field(default_factory=BatchMetrics)
    per_symbol: list[SymbolMetrics] = field(default_factory=list)
    portfolio: PortfolioReturn = field(default_factory=PortfolioReturn)
    positions: PositionSimulation = field(default_factory=PositionSimulation)


def _win_loss(returns: Sequence[float]) -> tuple[int, int, float]:
    """(wins, losses, risk_reward) with wins counted at >= 0."""
    win_sum = 0.0
    loss_sum = 0.0
    wins = 0
    losses = 0
    for r in returns:
        if r >= 0:
            wins += 1
            win_sum += r
        else:
            losses += 1
            loss_sum += abs(r)
    avg_win = win_sum / wins if wins else 0.0
    avg_loss = loss_sum / losses if losses else 0.0
    return wins, losses, (avg_win / avg_loss if avg_loss > 0 else 0.0)


class BatchStatisticsCalculator:
    """Calculate batch statistics with optional trade filters.

    Args:
        long_only: Ignore SHORT trades.
        symbols: Restrict to these symbols (None = all).
        start: Ignore trades entered before this epoch (0 = no limit).
        position_size: Capital per position; non-positive falls back to
            DEFAULT_POSITION_SIZE.
    """

    def __init__(
        self,
        long_only: bool = False,
        symbols: set[str] | None = None,
        start: int = 0,
        position_size: float = DEFAULT_POSITION_SIZE,
    ):
        self.long_only = long_only
        self.symbols = symbols
        self.start = start
        self.position_size = position_size if position_size > 0 else DEFAULT_POSITION_SIZE

    def select(self, trades: Sequence[SymbolTrade]) -> list[SymbolTrade]:
        selected = [
            t for t in trades
            if (not self.long_only or t.trade.direction == Direction.LONG)
            and (self.symbols is None or t.symbol in self.symbols)
            and (self.start <= 0 or t.entry_time >= self.start)
        ]
        return sorted(selected, key=lambda t: t.entry_time)

    def calculate(self, trades: Sequence[SymbolTrade]) -> BatchResult:
        result = BatchResult(trades=self.select(trades))
        self._calc_metrics(result)
        self._calc_per_symbol(result)
        self._calc_portfolio(result)
        self._calc_positions(result)
        logger.debug(
            "Batch: %d trades, %d symbols", len(result.trades), len(result.per_symbol)
        )
        return result

    def _calc_metrics(self, result: BatchResult) -> None:
        closed = [t for t in result.trades if not t.trade.is_open]
        returns = [t.return_pct for t in closed]
        if not returns:
            return

        equity = START_EQUITY
        peak = START_EQUITY
        max_dd = 0.0
        for r in returns:
            equity *= 1 + r / 100
            peak = max(peak, equity)
            max_dd = max(max_dd, (peak - equity) / peak * 100)

        wins, losses, rr = _win_loss(returns)
        total = sum(returns)
        result.metrics = BatchMetrics(
            total_trades=len(returns),
            wins=wins,
            losses=losses,
            win_rate=wins / len(returns) * 100,
            risk_reward=rr,
            total_return=total,
            avg_return=total / len(returns),
            max_drawdown=max_dd,
            net_profit=equity - START_EQUITY,
        )

    def _calc_per_symbol(self, result: BatchResult) -> None:
        groups: dict[str, list[float]] = {}
        for t in result.trades:
            if t.trade.is_open:
                continue
            groups.setdefault(t.symbol, []).append(t.return_pct)

        per_symbol = []
        for symbol, returns in groups.items():
            wins, losses, rr = _win_loss(returns)
            per_symbol.append(SymbolMetrics(
                symbol=symbol,
                total_trades=len(returns),
                wins=wins,
                losses=losses,
                win_rate=wins / len(returns) * 100,
                risk_reward=rr,
                total_return=sum(returns),
            ))
        result.per_symbol = sorted(per_symbol, key=lambda s: s.total_return, reverse=True)

    def _calc_portfolio(self, result: BatchResult) -> None:
        """Closed trades only: required capital and return on it."""
        closed = [t for t in result.trades if not t.trade.is_open]
        size = self.position_size
        parallel = max_concurrent(
            (t.entry_time, t.trade.exit_date) for t in closed
        )
        required = parallel * size
        profit = sum(size * (t.return_pct / 100) for t in closed)
        result.portfolio = PortfolioReturn(
            position_size=size,
            max_parallel=parallel,
            required_capital=required,
            total_profit=profit,
            portfolio_return=profit / required * 100 if required > 0 else 0.0,
        )

    def _calc_positions(self, result: BatchResult) -> None:
        """All trades; an open trade keeps its slot until the end."""
        trades = result.trades
        size = self.position_size
        parallel = max_concurrent((t.entry_time, t.trade.exit_date) for t in trades)
        required = parallel * size
        profit = sum(size * (t.return_pct / 100) for t in trades)
        wins = sum(1 for t in trades if t.return_pct >= 0)
        result.positions = PositionSimulation(
            position_size=size,
            total_trades=len(trades),
            wins=wins,
            losses=len(trades) - wins,
            open_count=sum(1 for t in trades if t.trade.is_open),
            win_rate=wins / len(trades) * 100 if trades else 0.0,
            max_parallel=parallel,
            required_capital=required,
            total_profit=profit,
            roi=profit / required * 100 if required > 0 else 0.0,
        )


def calculate_batch_metrics(
    trades: Sequence[SymbolTrade],
    long_only: bool = False,
    symbols: set[str] | None = None,
    start: int = 0,
) -> BatchMetrics:
    return BatchStatisticsCalculator(long_only, symbols, start).calculate(trades).metrics


def compound_portfolio_return(
    trades: Sequence[SymbolTrade],
    position_size: float = DEFAULT_POSITION_SIZE,
) -> PortfolioReturn:
    return BatchStatisticsCalculator(position_size=position_size).calculate(trades).portfolio


def position_simulation(
    trades: Sequence[SymbolTrade],
    position_size: float = DEFAULT_POSITION_SIZE,
    long_only: bool = False,
    symbols: set[str] | None = None,
    start: int = 0,
) -> PositionSimulation:
    calc = BatchStatisticsCalculator(long_only, symbols, start, position_size)
    return calc.calculate(trades).positions
