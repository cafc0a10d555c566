"""Trading strategies."""

from .base import BaseStrategy
from .benchmarks import AlternatingStrategy, BuyAndHoldStrategy
from .mean_reversion import MeanReversionStrategy
from .momentum import MovingAverageCrossStrategy


STRATEGIES = {
    'buy_and_hold': BuyAndHoldStrategy,
    'alternating': AlternatingStrategy,
    'ma_cross': MovingAverageCrossStrategy,
    'mean_reversion': MeanReversionStrategy,
}


def create_strategy(name: str, **kwargs) -> BaseStrategy:
    """Factory function to create strategies by name."""
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {name}. Available strategies: {sorted(STRATEGIES)}")
    return STRATEGIES[name](**kwargs)


__all__ = [
    "BaseStrategy",
    "BuyAndHoldStrategy",
    "AlternatingStrategy",
    "MovingAverageCrossStrategy",
    "MeanReversionStrategy",
    "STRATEGIES",
    "create_strategy"
]
