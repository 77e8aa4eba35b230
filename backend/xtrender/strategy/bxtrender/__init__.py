"""B-Xtrender strategy package.

Importing this package registers the five modes (defensive, aggressive,
quant, ditz, trader) via the @register_strategy decorator.
"""

from xtrender.strategy.bxtrender.generator import (
    AggressiveStrategy,
    DefensiveStrategy,
    DitzStrategy,
    QuantStrategy,
    TraderStrategy,
    XtrenderSeries,
    compute_series,
    light_red_run,
)
from xtrender.strategy.bxtrender.models import BXtrenderConfig, QuantConfig

__all__ = [
    "AggressiveStrategy",
    "DefensiveStrategy",
    "DitzStrategy",
    "QuantStrategy",
    "TraderStrategy",
    "XtrenderSeries",
    "compute_series",
    "light_red_run",
    "BXtrenderConfig",
    "QuantConfig",
]
