"""Margin, payoff and strategy metrics engines."""

from .margin import MarginEngine, ScenarioPnL, calculate_margin
from .metrics import (
    analytic_unlimited,
    breakeven_points,
    calculate_strategy_metrics,
    probability_of_profit,
)
from .payoff import current_payoff, expiry_payoff, payoff_curve, spot_sweep, total_investment
from .scenarios import Scenario, generate_scenarios

__all__ = [
    "MarginEngine",
    "Scenario",
    "ScenarioPnL",
    "analytic_unlimited",
    "breakeven_points",
    "calculate_margin",
    "calculate_strategy_metrics",
    "current_payoff",
    "expiry_payoff",
    "generate_scenarios",
    "payoff_curve",
    "probability_of_profit",
    "spot_sweep",
    "total_investment",
]
