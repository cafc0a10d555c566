"""
Stress testing.

Illustrative what-if analysis: shock the return distribution by a number
of standard deviations, or shock the prices of held positions. Nothing here
mutates portfolio state.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from ..core.ledger import PortfolioSnapshot
from .metrics import ArrayLike, to_array, sample_std


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StressScenario:
    """
    A named shock in units of return standard deviations.

    Attributes:
        name: Scenario name
        shock: Number of standard deviations added to the mean return
            (negative for a sell-off)
        volatility_multiplier: Scale applied to the standard deviation
            before shocking
    """
    name: str
    shock: float
    volatility_multiplier: float = 1.0


@dataclass(frozen=True)
class StressResult:
    """Outcome of a stress scenario."""
    scenario: str
    stressed_return: float
    portfolio_value: float
    stressed_value: float
    loss: float
    breakdown: Optional[Dict[str, float]] = None

    def to_dict(self) -> dict:
        result = {
            'scenario': self.scenario,
            'stressed_return': self.stressed_return,
            'portfolio_value': self.portfolio_value,
            'stressed_value': self.stressed_value,
            'loss': self.loss,
        }
        if self.breakdown is not None:
            result['breakdown'] = dict(self.breakdown)
        return result


DEFAULT_STRESS_SCENARIOS: List[StressScenario] = [
    StressScenario('two_sigma_down', -2.0),
    StressScenario('three_sigma_crash', -3.0),
    StressScenario('volatility_spike', -2.0, volatility_multiplier=2.0),
    StressScenario('five_sigma_tail', -5.0),
]


def stress_test(
    returns: ArrayLike,
    portfolio_value: float,
    scenarios: Optional[Iterable[StressScenario]] = None
) -> Dict[str, StressResult]:
    """
    Apply sigma shocks to the return distribution.

    Parameters
    ----------
    returns : array-like
        Period returns that define the mean and standard deviation
    portfolio_value : float
        Value the stressed return is applied to
    scenarios : iterable of StressScenario, optional
        Scenarios to run, DEFAULT_STRESS_SCENARIOS when omitted

    Returns
    -------
    dict
        Scenario name to StressResult. ``loss`` is positive when value is lost.
    """
    arr = to_array(returns)
    mean = float(np.mean(arr)) if len(arr) > 0 else 0.0
    std = sample_std(arr)
    value = float(portfolio_value)

    results = {}
    for scenario in (DEFAULT_STRESS_SCENARIOS if scenarios is None else scenarios):
        stressed_return = mean + scenario.shock * std * scenario.volatility_multiplier
        stressed_value = value * (1 + stressed_return)
        results[scenario.name] = StressResult(
            scenario=scenario.name,
            stressed_return=stressed_return,
            portfolio_value=value,
            stressed_value=stressed_value,
            loss=value - stressed_value
        )
        logger.debug(f"Stress scenario {scenario.name}: return {stressed_return:.4%}")

    return results


def shock_positions(
    snapshot: PortfolioSnapshot,
    shocks: Mapping[str, float],
    name: str = 'position_shock'
) -> StressResult:
    """
    Apply per-symbol price shocks to the positions of a snapshot.

    Parameters
    ----------
    snapshot : PortfolioSnapshot
        Portfolio state to stress
    shocks : mapping
        Symbol to fractional price change (-0.2 for a 20% drop). Symbols
        without a shock keep their price.
    name : str
        Name reported on the result

    Returns
    -------
    StressResult
        Stressed equity with per-symbol P&L in ``breakdown``
    """
    breakdown: Dict[str, float] = {}
    total_pnl = Decimal('0')

    for symbol, position in sorted(snapshot.positions.items()):
        shock = Decimal(str(shocks.get(symbol, 0.0)))
        pnl = position.market_value * shock
        breakdown[symbol] = float(pnl)
        total_pnl += pnl

    value = float(snapshot.equity)
    stressed_value = float(snapshot.equity + total_pnl)
    return StressResult(
        scenario=name,
        stressed_return=(stressed_value / value - 1) if value != 0 else 0.0,
        portfolio_value=value,
        stressed_value=stressed_value,
        loss=value - stressed_value,
        breakdown=breakdown
    )
