"""
Slippage models for realistic order execution simulation.

A slippage model returns a signed per-unit price adjustment against the
market price: positive for buys, negative for sells. Buys always pay up and
sells always receive less.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
import logging
import math

from ..core.models import Order, OrderSide, to_decimal


logger = logging.getLogger(__name__)

BPS = Decimal('10000')


class SlippageModel(ABC):
    """Abstract base class for slippage models."""

    @abstractmethod
    def calculate(self, order: Order, market_price: Decimal) -> Decimal:
        """
        Calculate slippage for an order.

        Args:
            order: Order to execute
            market_price: Reference market price (the bar close)

        Returns:
            Signed price adjustment (positive for buys, negative for sells)
        """
        pass

    def fill_price(self, order: Order, market_price: Decimal) -> Decimal:
        """
        Apply slippage to the market price.

        Raises:
            ValueError: If the model moved the price in the trader's favour
        """
        adjustment = self.calculate(order, market_price)
        if (order.side == OrderSide.BUY and adjustment < 0) or \
                (order.side == OrderSide.SELL and adjustment > 0):
            raise ValueError(
                f"{type(self).__name__} returned favourable slippage {adjustment} "
                f"for a {order.side.value} order"
            )
        return market_price + adjustment

    @staticmethod
    def _directional(order: Order, amount: Decimal) -> Decimal:
        """Sign an unsigned slippage amount by order side."""
        if order.side == OrderSide.BUY:
            return amount
        return -amount


class NoSlippageModel(SlippageModel):
    """No slippage model for testing or perfect execution scenarios."""

    def calculate(self, order: Order, market_price: Decimal) -> Decimal:
        """Return zero slippage."""
        return Decimal('0')


class FixedBpsSlippageModel(SlippageModel):
    """
    Fixed slippage in basis points of the market price.

    Slippage = price * bps / 10000
    """

    def __init__(self, bps: Decimal):
        """
        Initialize fixed slippage model.

        Args:
            bps: Slippage in basis points (5 = 0.05%)
        """
        bps = to_decimal(bps)
        if bps < 0:
            raise ValueError(f"Slippage bps must be non-negative, got {bps}")
        self.bps = bps
        logger.info(f"FixedBpsSlippageModel initialized: {bps} bps")

    def calculate(self, order: Order, market_price: Decimal) -> Decimal:
        """Calculate fixed slippage."""
        slippage = market_price * self.bps / BPS
        return self._directional(order, slippage)


class SquareRootSlippageModel(SlippageModel):
    """
    Square-root market impact model.

    Market impact scales with the square root of order size.
    Slippage = price * impact_coefficient * sqrt(quantity) / 10000
    """

    def __init__(self, impact_coefficient: Decimal = Decimal('1')):
        """
        Initialize square-root slippage model.

        Args:
            impact_coefficient: Impact in basis points per square-root unit of quantity
        """
        impact_coefficient = to_decimal(impact_coefficient)
        if impact_coefficient < 0:
            raise ValueError(f"Impact coefficient must be non-negative, got {impact_coefficient}")
        self.impact_coefficient = impact_coefficient
        logger.info(f"SquareRootSlippageModel initialized: "
                    f"impact_coeff={impact_coefficient:.3f}")

    def calculate(self, order: Order, market_price: Decimal) -> Decimal:
        """Calculate square-root slippage."""
        sqrt_impact = Decimal(str(math.sqrt(max(0, order.quantity))))
        slippage = market_price * self.impact_coefficient * sqrt_impact / BPS
        return self._directional(order, slippage)


def create_slippage_model(model_type: str, **kwargs) -> SlippageModel:
    """
    Factory function to create slippage models.

    Args:
        model_type: Type of slippage model
        **kwargs: Model-specific parameters

    Returns:
        Slippage model instance
    """
    model_map = {
        'none': NoSlippageModel,
        'fixed_bps': FixedBpsSlippageModel,
        'square_root': SquareRootSlippageModel,
    }

    if model_type not in model_map:
        available_types = list(model_map.keys())
        raise ValueError(f"Unknown slippage model type: {model_type}. "
                         f"Available types: {available_types}")

    return model_map[model_type](**kwargs)
