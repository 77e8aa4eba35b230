"""Smart Money Flow strategy package.

Importing this package triggers strategy registration via the
@register_strategy decorator on SmartMoneyFlowStrategy.
"""

from xtrender.strategy.smart_money_flow.generator import (
    SmartMoneyFlowStrategy,
    band_multiplier,
    band_regime,
)
from xtrender.strategy.smart_money_flow.models import (
    SMART_MONEY_FLOW_STRATEGY_NAME,
    SmartMoneyFlowConfig,
)

__all__ = [
    "SmartMoneyFlowStrategy",
    "SmartMoneyFlowConfig",
    "SMART_MONEY_FLOW_STRATEGY_NAME",
    "band_multiplier",
    "band_regime",
]
