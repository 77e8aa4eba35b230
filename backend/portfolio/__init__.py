"""Cross-symbol portfolio layer.

Aggregates persisted trade rows per mode, optimizes stock pools and
simulates the capital needed to follow every trade.

Usage:
    python -m portfolio simulate rows.json --amount 250 --range 2y
"""

from portfolio.aggregation import ModeData, ModeStats, PerformanceFilters, aggregate
from portfolio.simulator import SimulationResult, simulate

__all__ = [
    "ModeData",
    "ModeStats",
    "PerformanceFilters",
    "aggregate",
    "SimulationResult",
    "simulate",
]
