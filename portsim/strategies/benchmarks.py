"""
Benchmark strategies for performance comparison.

Simple deterministic strategies: buy once and hold, or flip between buying
and selling on a fixed bar period.
"""

import logging
from typing import Optional

from .base import BaseStrategy
from ..core.models import Bar, Signal


logger = logging.getLogger(__name__)


class BuyAndHoldStrategy(BaseStrategy):
    """
    Simple buy-and-hold benchmark strategy.

    Issues a single buy signal on the first bar and holds for the rest of
    the run.
    """

    def __init__(self, strategy_id: str = "buy_and_hold"):
        super().__init__(strategy_id)
        self.invested = False

    def generate_signal(self, bar: Bar) -> Optional[Signal]:
        if self.invested:
            return None
        self.invested = True
        return self.buy(bar, strategy_type='buy_and_hold')

    def reset(self) -> None:
        super().reset()
        self.invested = False


class AlternatingStrategy(BaseStrategy):
    """
    Alternates buy and sell signals every ``period`` bars.

    Buys on bar 0, sells on bar ``period``, buys on bar ``2 * period`` and
    so on. Holds on every other bar.
    """

    def __init__(self, period: int = 10, strategy_id: str = "alternating"):
        """
        Initialize alternating strategy.

        Parameters
        ----------
        period : int
            Number of bars between a buy and the following sell
        strategy_id : str
            Unique strategy identifier
        """
        if period <= 0:
            raise ValueError(f"Period must be positive, got {period}")
        super().__init__(strategy_id, {'period': period})
        self.period = period

    def generate_signal(self, bar: Bar) -> Optional[Signal]:
        index = len(self.history) - 1
        if index % self.period != 0:
            return None
        if (index // self.period) % 2 == 0:
            return self.buy(bar, bar_index=index)
        return self.sell(bar, bar_index=index)
