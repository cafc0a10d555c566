"""
Z-score mean reversion strategy.

This strategy buys when the close falls well below its trailing mean and
exits once it has reverted towards it.
"""

import logging
from typing import Optional

from .base import BaseStrategy
from ..core.models import Bar, Signal


logger = logging.getLogger(__name__)


class MeanReversionStrategy(BaseStrategy):
    """
    Z-score mean reversion strategy.

    Strategy Logic:
    - Buy when the z-score of the close drops below ``-entry_z``
    - Sell when the z-score recovers above ``-exit_z``
    - One entry at a time; the strategy tracks whether it has entered
    """

    def __init__(
        self,
        lookback: int = 20,
        entry_z: float = 2.0,
        exit_z: float = 0.0,
        strategy_id: str = "mean_reversion"
    ):
        """
        Initialize mean reversion strategy.

        Args:
            lookback: Window for the trailing mean and standard deviation
            entry_z: Z-score magnitude that triggers an entry
            exit_z: Z-score magnitude below which the position is exited
            strategy_id: Unique strategy identifier
        """
        if lookback < 2:
            raise ValueError(f"Lookback must be at least 2, got {lookback}")
        if entry_z <= exit_z:
            raise ValueError(f"Entry threshold ({entry_z}) must exceed exit threshold ({exit_z})")

        super().__init__(strategy_id, {'lookback': lookback, 'entry_z': entry_z, 'exit_z': exit_z})
        self.lookback = lookback
        self.entry_z = entry_z
        self.exit_z = exit_z
        self.in_position = False

    def generate_signal(self, bar: Bar) -> Optional[Signal]:
        zscore = self.calculate_zscore(self.lookback)
        if zscore is None:
            return None

        if not self.in_position and zscore < -self.entry_z:
            self.in_position = True
            return self.buy(bar, strength=min(abs(zscore) / self.entry_z, 1.0), zscore=zscore)

        if self.in_position and zscore > -self.exit_z:
            self.in_position = False
            return self.sell(bar, zscore=zscore)

        return None

    def reset(self) -> None:
        super().reset()
        self.in_position = False
