"""Core components of the simulation engine."""

from .models import (
    Bar,
    Signal,
    Order,
    Fill,
    TradeIntent,
    OrderSide,
    OrderType,
)

from .ledger import (
    Ledger,
    Position,
    PortfolioSnapshot,
    FillOutcome,
    FillResult,
    LedgerInvariantError,
)

from .journal import Trade, TradeJournal
from .data_handler import DataValidator, validate_bars, load_bars_from_csv, bars_from_dataframe, filter_bars
from .engine import BacktestEngine, EngineState, Rejection

__all__ = [
    "Bar",
    "Signal",
    "Order",
    "Fill",
    "TradeIntent",
    "OrderSide",
    "OrderType",
    "Ledger",
    "Position",
    "PortfolioSnapshot",
    "FillOutcome",
    "FillResult",
    "LedgerInvariantError",
    "Trade",
    "TradeJournal",
    "DataValidator",
    "validate_bars",
    "load_bars_from_csv",
    "bars_from_dataframe",
    "filter_bars",
    "BacktestEngine",
    "EngineState",
    "Rejection",
]
