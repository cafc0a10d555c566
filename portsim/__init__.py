"""
portsim

A deterministic portfolio simulation engine with cost models, position and
cash bookkeeping, trade lifecycle tracking and risk/performance analytics.
"""

__version__ = "1.0.0"
__author__ = "Quantitative Trading Team"

from .core.engine import BacktestEngine, EngineState, Rejection
from .core.models import Bar, Signal, Order, Fill, OrderSide
from .core.ledger import Ledger, Position, PortfolioSnapshot
from .core.journal import Trade, TradeJournal
from .analysis.performance import BacktestResult, PerformanceMetrics
from .strategies.base import BaseStrategy

__all__ = [
    "BacktestEngine",
    "EngineState",
    "Rejection",
    "Bar",
    "Signal",
    "Order",
    "Fill",
    "OrderSide",
    "Ledger",
    "Position",
    "PortfolioSnapshot",
    "Trade",
    "TradeJournal",
    "BacktestResult",
    "PerformanceMetrics",
    "BaseStrategy",
]
