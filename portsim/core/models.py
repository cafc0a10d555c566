"""
Domain types shared by the simulation engine.

Bars and signals come in from collaborators, orders and fills are produced
internally by the engine. Money and prices are carried as ``Decimal``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


def to_decimal(value: Any) -> Decimal:
    """Convert a number to ``Decimal`` without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class OrderSide(str, Enum):
    """Order side."""
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order type. Only MARKET orders are produced by the engine."""
    MARKET = "MARKET"
    LIMIT = "LIMIT"


@dataclass(frozen=True)
class Bar:
    """
    One OHLCV observation for a symbol at a timestamp.

    Attributes:
        timestamp: Bar timestamp
        open: Opening price
        high: High price
        low: Low price
        close: Closing price
        volume: Traded volume
        symbol: Trading symbol (optional)
    """
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = 0
    symbol: Optional[str] = None

    def __post_init__(self):
        for name in ('open', 'high', 'low', 'close'):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    @property
    def is_finite(self) -> bool:
        """Check that all prices are finite numbers."""
        return all(price.is_finite() for price in (self.open, self.high, self.low, self.close))


@dataclass(frozen=True)
class Signal:
    """
    Directional output of a strategy for one bar.

    ``value`` is conceptually -1 (sell), 0 (hold) or +1 (buy), continuous
    values are allowed and only their sign is used.
    """
    timestamp: datetime
    value: float
    strength: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def side(self) -> Optional[OrderSide]:
        """Order side implied by the signal, ``None`` for a flat signal."""
        if self.value > 0:
            return OrderSide.BUY
        if self.value < 0:
            return OrderSide.SELL
        return None


@dataclass(frozen=True)
class Order:
    """Market order built by the engine from a non-zero signal."""
    symbol: str
    side: OrderSide
    quantity: int
    timestamp: Optional[datetime] = None
    order_type: OrderType = OrderType.MARKET


@dataclass(frozen=True)
class TradeIntent:
    """Prospective trade handed to a commission model."""
    symbol: str
    side: OrderSide
    quantity: int
    price: Decimal

    @property
    def notional(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class Fill:
    """
    Realized execution of an order.

    Attributes:
        symbol: Trading symbol
        side: Order side
        quantity: Filled quantity (always the full order quantity)
        fill_price: Execution price after slippage
        commission: Commission charged
        timestamp: Execution time
        slippage: Signed per-unit price adjustment applied to the market price
    """
    symbol: str
    side: OrderSide
    quantity: int
    fill_price: Decimal
    commission: Decimal
    timestamp: datetime
    slippage: Decimal = Decimal('0')

    @property
    def gross_amount(self) -> Decimal:
        """Quantity times fill price."""
        return self.fill_price * self.quantity

    @property
    def net_amount(self) -> Decimal:
        """Cash impact of the fill (negative for buys)."""
        if self.side == OrderSide.BUY:
            return -(self.gross_amount + self.commission)
        return self.gross_amount - self.commission
