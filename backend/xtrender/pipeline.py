"""Per-symbol pipeline entry points.

bars -> compute_indicator -> (oscillators, trades, markers)
     -> classify_signal   -> (signal, bars)
     -> build_trade_rows  -> persisted rows for the portfolio layer
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from xtrender.metrics import QualityScores, calculate_metrics
from xtrender.models import (
    NextOpen,
    OscillatorSample,
    SignalLabel,
    SignalResult,
    Trade,
    TradeRow,
)
from xtrender.signals import classifier
from xtrender.strategy import BarInput, IndicatorResult, get_strategy_class

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = "defensive"


def compute_indicator(
    bars: BarInput,
    strategy: str = DEFAULT_STRATEGY,
    params: Mapping[str, Any] | None = None,
    next_open: NextOpen | None = None,
) -> IndicatorResult:
    """Run a registered strategy over ``bars``.

    Args:
        bars: Completed bars, oldest first. Malformed entries are dropped.
        strategy: Registered strategy name.
        params: Strategy config overrides (snake_case or camelCase keys).
        next_open: Optional forming bar used to execute last-bar signals.

    Raises:
        KeyError: If the strategy is not registered.
        pydantic.ValidationError: If ``params`` are invalid.
    """
    cls = get_strategy_class(strategy)
    config = cls.default_config(**dict(params or {}))
    result = cls(config).compute(bars, next_open)
    logger.debug(
        "%s: %d samples, %d trades",
        strategy, len(result.primary_series), len(result.trades),
    )
    return result


def classify_signal(
    strategy: str,
    oscillators: Mapping[str, Sequence[OscillatorSample]],
    trades: Sequence[Trade] = (),
) -> SignalResult:
    """Classify the latest signal; NO_DATA when the run produced nothing."""
    if not any(oscillators.values()):
        return SignalResult(signal=SignalLabel.NO_DATA, bars=0)
    return classifier.classify_signal(strategy, oscillators, trades)


def build_trade_rows(
    symbol: str,
    mode: str,
    trades: Sequence[Trade],
    scores: QualityScores | None = None,
    market_cap: float = 0.0,
    name: str = "",
) -> list[TradeRow]:
    """Convert a run's trades into persisted rows tagged with quality scores."""
    if scores is None:
        scores = calculate_metrics(trades)
    return [
        TradeRow(
            mode=mode,
            symbol=symbol,
            name=name,
            entry_date=t.entry_date,
            entry_price=t.entry_price,
            exit_date=t.exit_date,
            exit_price=t.exit_price,
            current_price=t.current_price,
            return_pct=t.return_pct,
            status="OPEN" if t.is_open else "CLOSED",
            direction=t.direction,
            win_rate=scores.win_rate,
            risk_reward=scores.risk_reward,
            avg_return=scores.avg_return,
            market_cap=market_cap,
        )
        for t in trades
    ]
