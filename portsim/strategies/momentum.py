"""
Moving average crossover momentum strategy.

Buys when the fast simple moving average crosses above the slow one and
sells when it crosses back below.
"""

import logging
from typing import Optional

from .base import BaseStrategy
from ..core.models import Bar, Signal


logger = logging.getLogger(__name__)


class MovingAverageCrossStrategy(BaseStrategy):
    """
    Dual moving average crossover strategy.

    Strategy Logic:
    - Buy when the fast SMA crosses above the slow SMA
    - Sell when the fast SMA crosses below the slow SMA
    - Hold otherwise, including while the slow SMA is warming up
    """

    def __init__(self, fast: int = 10, slow: int = 30, strategy_id: str = "ma_cross"):
        """
        Initialize crossover strategy.

        Args:
            fast: Fast SMA period
            slow: Slow SMA period
            strategy_id: Unique strategy identifier
        """
        if fast <= 0 or slow <= 0:
            raise ValueError(f"Moving average periods must be positive, got {fast}/{slow}")
        if fast >= slow:
            raise ValueError(f"Fast period ({fast}) must be shorter than slow period ({slow})")

        super().__init__(strategy_id, {'fast': fast, 'slow': slow})
        self.fast = fast
        self.slow = slow
        self._previous_spread: Optional[float] = None

    def generate_signal(self, bar: Bar) -> Optional[Signal]:
        fast_ma = self.calculate_sma(self.fast)
        slow_ma = self.calculate_sma(self.slow)
        if fast_ma is None or slow_ma is None:
            return None

        spread = fast_ma - slow_ma
        previous, self._previous_spread = self._previous_spread, spread
        if previous is None:
            return None

        if previous <= 0 < spread:
            return self.buy(bar, fast_ma=fast_ma, slow_ma=slow_ma)
        if previous >= 0 > spread:
            return self.sell(bar, fast_ma=fast_ma, slow_ma=slow_ma)
        return None

    def reset(self) -> None:
        super().reset()
        self._previous_spread = None
