"""
Base strategy class and framework for developing trading strategies.

A strategy sees one bar at a time through ``next(bar)`` and answers with a
``Signal`` or None. It never touches the ledger; the engine decides the
order size and whether the order can be filled.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import logging

import numpy as np

from ..core.models import Bar, Signal


logger = logging.getLogger(__name__)


class BaseStrategy(ABC):
    """
    Abstract base class for all trading strategies.

    Keeps an explicit ``history`` of the bars seen so far. Subclasses
    implement ``generate_signal``, which is called after the current bar has
    been appended to the history.
    """

    def __init__(self, strategy_id: str, parameters: Optional[Dict[str, Any]] = None):
        """
        Initialize the strategy.

        Args:
            strategy_id: Unique identifier for the strategy
            parameters: Strategy-specific parameters
        """
        self.strategy_id = strategy_id
        self.parameters = parameters or {}

        self.history: List[Bar] = []
        self.signals_generated = 0

        logger.info(f"Initialized strategy {strategy_id} with parameters: {self.parameters}")

    def init(self, bars: Sequence[Bar]) -> None:
        """Called once with the full bar sequence before the first ``next``."""

    def next(self, bar: Bar) -> Optional[Signal]:
        """Record the bar and return the strategy's signal for it."""
        self.history.append(bar)
        signal = self.generate_signal(bar)
        if signal is not None and signal.value != 0:
            self.signals_generated += 1
            logger.debug(f"Strategy {self.strategy_id} signal {signal.value:+g} at {bar.timestamp}")
        return signal

    @abstractmethod
    def generate_signal(self, bar: Bar) -> Optional[Signal]:
        """
        Generate the signal for the latest bar.

        Args:
            bar: Current bar, already appended to ``history``

        Returns:
            Signal, or None to hold
        """
        pass

    def closes(self, period: Optional[int] = None) -> np.ndarray:
        """Closing prices of the history as floats, the last ``period`` only when given."""
        bars = self.history if period is None else self.history[-period:]
        return np.array([float(bar.close) for bar in bars], dtype=np.float64)

    def calculate_sma(self, period: int) -> Optional[float]:
        """
        Calculate Simple Moving Average of closes.

        Returns:
            SMA value or None if insufficient data
        """
        if len(self.history) < period:
            return None
        return float(np.mean(self.closes(period)))

    def calculate_zscore(self, period: int) -> Optional[float]:
        """
        Z-score of the latest close against the trailing ``period`` closes.

        Returns:
            Z-score, or None with insufficient data or a flat window
        """
        if len(self.history) < period:
            return None

        window = self.closes(period)
        std = float(np.std(window))
        if std == 0:
            return None
        return float((window[-1] - np.mean(window)) / std)

    def buy(self, bar: Bar, strength: float = 1.0, **metadata) -> Signal:
        return Signal(timestamp=bar.timestamp, value=1.0, strength=strength, metadata=metadata)

    def sell(self, bar: Bar, strength: float = 1.0, **metadata) -> Signal:
        return Signal(timestamp=bar.timestamp, value=-1.0, strength=strength, metadata=metadata)

    def get_statistics(self) -> Dict[str, Any]:
        """Get strategy statistics."""
        return {
            'strategy_id': self.strategy_id,
            'bars_seen': len(self.history),
            'signals_generated': self.signals_generated,
            'parameters': self.parameters
        }

    def reset(self) -> None:
        """Reset strategy state for a new run."""
        self.history = []
        self.signals_generated = 0

        logger.info(f"Strategy {self.strategy_id} reset")

    def __repr__(self) -> str:
        """String representation of strategy."""
        return (f"{self.__class__.__name__}(id={self.strategy_id}, "
                f"signals={self.signals_generated})")
