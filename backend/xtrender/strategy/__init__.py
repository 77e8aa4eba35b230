"""Strategy plugin system.

Public API:
- Strategy: Protocol that all strategies must implement
- IndicatorResult: Standard return type from a strategy run
- register_strategy: Decorator to register a strategy class
- create_strategy: Factory function to instantiate strategies by name
- list_strategies: Discover all registered strategies
- get_strategy_class: Get strategy class by name without instantiating

Importing this package auto-registers all built-in strategies.
"""

from xtrender.strategy.protocol import BarInput, IndicatorResult, Strategy
from xtrender.strategy.registry import (
    create_strategy,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from xtrender.strategy.ledger import TradeLedger
from xtrender.strategy.state_machine import (
    Execution,
    PullbackStateMachine,
    SetupTriggers,
)

# Import built-in strategies to trigger auto-registration
import xtrender.strategy.bxtrender  # noqa: F401
import xtrender.strategy.smart_money_flow  # noqa: F401
import xtrender.strategy.hann_trend  # noqa: F401

__all__ = [
    "BarInput",
    "IndicatorResult",
    "Strategy",
    "create_strategy",
    "get_strategy_class",
    "list_strategies",
    "register_strategy",
    "TradeLedger",
    "Execution",
    "PullbackStateMachine",
    "SetupTriggers",
]
