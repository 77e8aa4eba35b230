"""Per-symbol quality scores computed from a strategy's trade ledger.

These scores are attached to every persisted trade row and drive the
portfolio filters (win rate, risk/reward, average return).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from xtrender.models import Trade


@dataclass
class QualityScores:
    win_rate: float = 0.0
    risk_reward: float = 0.0
    total_return: float = 0.0
    avg_return: float = 0.0
    total_trades: int = 0
    wins: int = 0
    losses: int = 0


def calculate_metrics(trades: Sequence[Trade]) -> QualityScores:
    """Score the closed trades of one (symbol, strategy) run.

    Wins are trades with a positive return; everything else, including
    flat trades, counts as a loss. Without losses the average loss is taken
    as 1 so the risk/reward equals the average win. The total return is
    compounded, the average return is a simple mean.
    """
    closed = [t for t in trades if not t.is_open]
    if not closed:
        return QualityScores()

    wins = [t.return_pct for t in closed if t.return_pct > 0]
    losses = [t.return_pct for t in closed if t.return_pct <= 0]

    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = abs(sum(losses) / len(losses)) if losses else 1.0
    risk_reward = avg_win / avg_loss if avg_loss > 0 else avg_win

    growth = 1.0
    for t in closed:
        growth *= 1 + t.return_pct / 100

    return QualityScores(
        win_rate=len(wins) / len(closed) * 100,
        risk_reward=risk_reward,
        total_return=(growth - 1) * 100,
        avg_return=sum(t.return_pct for t in closed) / len(closed),
        total_trades=len(closed),
        wins=len(wins),
        losses=len(losses),
    )
