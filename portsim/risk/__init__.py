"""Risk measures and stress testing."""

from .metrics import (
    DrawdownInfo,
    calculate_returns,
    volatility,
    downside_deviation,
    max_drawdown,
    drawdown_series,
    ulcer_index,
    value_at_risk,
    conditional_value_at_risk,
    beta,
    tracking_error,
)
from .stress import StressScenario, StressResult, DEFAULT_STRESS_SCENARIOS, stress_test, shock_positions

__all__ = [
    "DrawdownInfo",
    "calculate_returns",
    "volatility",
    "downside_deviation",
    "max_drawdown",
    "drawdown_series",
    "ulcer_index",
    "value_at_risk",
    "conditional_value_at_risk",
    "beta",
    "tracking_error",
    "StressScenario",
    "StressResult",
    "DEFAULT_STRESS_SCENARIOS",
    "stress_test",
    "shock_positions",
]
