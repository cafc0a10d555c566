"""Execution cost models."""

from .slippage import (
    SlippageModel,
    NoSlippageModel,
    FixedBpsSlippageModel,
    SquareRootSlippageModel,
    create_slippage_model,
)
from .commissions import (
    CommissionModel,
    NoCommissionModel,
    FixedCommissionModel,
    PercentageCommissionModel,
    create_commission_model,
)

__all__ = [
    "SlippageModel",
    "NoSlippageModel",
    "FixedBpsSlippageModel",
    "SquareRootSlippageModel",
    "create_slippage_model",
    "CommissionModel",
    "NoCommissionModel",
    "FixedCommissionModel",
    "PercentageCommissionModel",
    "create_commission_model",
]
