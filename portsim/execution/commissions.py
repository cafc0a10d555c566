"""
Commission models for realistic cost simulation.

Commission models are pure: they map a prospective trade to a monetary
amount and keep no state, so one instance can be shared between runs.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
import logging

from ..core.models import TradeIntent, to_decimal


logger = logging.getLogger(__name__)


class CommissionModel(ABC):
    """Abstract base class for commission models."""

    @abstractmethod
    def calculate(self, intent: TradeIntent) -> Decimal:
        """
        Calculate commission for a trade.

        Args:
            intent: Prospective trade (symbol, side, quantity, fill price)

        Returns:
            Commission amount
        """
        pass


class NoCommissionModel(CommissionModel):
    """Commission-free trading."""

    def calculate(self, intent: TradeIntent) -> Decimal:
        """Return zero commission."""
        return Decimal('0')


class FixedCommissionModel(CommissionModel):
    """
    Fixed commission per trade.

    Common for discount brokers offering flat-rate pricing.
    """

    def __init__(self, commission_per_trade: Decimal):
        """
        Initialize fixed commission model.

        Args:
            commission_per_trade: Fixed commission amount per trade
        """
        commission_per_trade = to_decimal(commission_per_trade)
        if commission_per_trade < 0:
            raise ValueError(f"Commission must be non-negative, got {commission_per_trade}")
        self.commission_per_trade = commission_per_trade
        logger.info(f"FixedCommissionModel initialized: ${commission_per_trade} per trade")

    def calculate(self, intent: TradeIntent) -> Decimal:
        """Calculate fixed commission."""
        return self.commission_per_trade


class PercentageCommissionModel(CommissionModel):
    """
    Percentage-based commission model.

    Commission is calculated as a percentage of trade value.
    """

    def __init__(self, commission_rate: Decimal, min_commission: Decimal = Decimal('0')):
        """
        Initialize percentage commission model.

        Args:
            commission_rate: Commission rate as decimal (e.g., 0.001 for 0.1%)
            min_commission: Minimum commission per trade
        """
        commission_rate = to_decimal(commission_rate)
        min_commission = to_decimal(min_commission)
        if commission_rate < 0 or min_commission < 0:
            raise ValueError("Commission rate and minimum must be non-negative")
        self.commission_rate = commission_rate
        self.min_commission = min_commission
        logger.info(f"PercentageCommissionModel initialized: {commission_rate*100:.3f}% "
                    f"(min: ${min_commission})")

    def calculate(self, intent: TradeIntent) -> Decimal:
        """Calculate percentage-based commission."""
        commission = intent.notional * self.commission_rate
        return max(commission, self.min_commission)


def create_commission_model(model_type: str, **kwargs) -> CommissionModel:
    """
    Factory function to create commission models.

    Args:
        model_type: Type of commission model
        **kwargs: Model-specific parameters

    Returns:
        Commission model instance
    """
    model_map = {
        'none': NoCommissionModel,
        'fixed': FixedCommissionModel,
        'percentage': PercentageCommissionModel,
    }

    if model_type not in model_map:
        available_types = list(model_map.keys())
        raise ValueError(f"Unknown commission model type: {model_type}. "
                         f"Available types: {available_types}")

    return model_map[model_type](**kwargs)
