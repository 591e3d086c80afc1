"""optrisk core package.

Risk and margin engine for multi-leg option strategies: Black-76 pricing,
scenario-based margin estimates and payoff curve metrics. The two library
entry points are :func:`calculate_margin` and
:func:`calculate_strategy_metrics`.
"""

from .models import (
    Action,
    MarginResult,
    MarketContext,
    OptionLeg,
    OptionType,
    PayoffPoint,
    ScenarioGrid,
    StrategyMetrics,
    parse_legs,
)
from .risk import calculate_margin, calculate_strategy_metrics, payoff_curve

__all__ = [
    "Action",
    "MarginResult",
    "MarketContext",
    "OptionLeg",
    "OptionType",
    "PayoffPoint",
    "ScenarioGrid",
    "StrategyMetrics",
    "calculate_margin",
    "calculate_strategy_metrics",
    "parse_legs",
    "payoff_curve",
]
