"""
Position and cash ledger for the simulation engine.

The ledger owns the cash balance and the per-symbol long positions of one
run. Every fill goes through admission control: a buy needs enough cash for
notional plus commission, a sell needs enough held quantity and proceeds
that, together with cash, cover its commission. A fill that fails admission
is rejected with a tagged result and leaves the ledger untouched.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import logging

from .models import Fill, OrderSide, to_decimal


logger = logging.getLogger(__name__)


class LedgerInvariantError(RuntimeError):
    """Raised when the ledger's accounting invariants do not hold."""


class FillOutcome(str, Enum):
    """Outcome of submitting a fill to the ledger."""
    FILLED = "FILLED"
    REJECTED_INSUFFICIENT_FUNDS = "REJECTED_INSUFFICIENT_FUNDS"
    REJECTED_INSUFFICIENT_POSITION = "REJECTED_INSUFFICIENT_POSITION"
    REJECTED_INVALID_PRICE = "REJECTED_INVALID_PRICE"


@dataclass(frozen=True)
class FillResult:
    """
    Tagged result of a fill submission.

    Attributes:
        outcome: Filled or the rejection reason
        fill: The committed fill (None when rejected)
        realized_pnl: Realized P&L of a closing fill (zero for buys)
    """
    outcome: FillOutcome
    fill: Optional[Fill] = None
    realized_pnl: Decimal = Decimal('0')

    @property
    def filled(self) -> bool:
        return self.outcome == FillOutcome.FILLED


@dataclass
class Position:
    """
    Represents a long position in a single security.

    Attributes:
        symbol: Trading symbol
        quantity: Current position size (never negative)
        avg_price: Volume-weighted average entry price, None while flat
        last_price: Most recent mark-to-market price
        realized_pnl: Cumulative realized P&L of closing fills
    """
    symbol: str
    quantity: int = 0
    avg_price: Optional[Decimal] = None
    last_price: Decimal = Decimal('0')
    realized_pnl: Decimal = Decimal('0')

    @property
    def market_value(self) -> Decimal:
        """Calculate current market value of the position."""
        return self.last_price * self.quantity

    @property
    def unrealized_pnl(self) -> Decimal:
        """Calculate unrealized P&L against the last mark."""
        if self.quantity == 0 or self.avg_price is None:
            return Decimal('0')
        return (self.last_price - self.avg_price) * self.quantity

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0

    def update_market_price(self, price: Decimal) -> None:
        """Update the last market price."""
        self.last_price = price

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'quantity': self.quantity,
            'avg_price': None if self.avg_price is None else str(self.avg_price),
            'last_price': str(self.last_price),
            'market_value': str(self.market_value),
            'unrealized_pnl': str(self.unrealized_pnl),
            'realized_pnl': str(self.realized_pnl),
        }


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Per-bar record of cash, equity and positions."""
    timestamp: datetime
    cash: Decimal
    equity: Decimal
    positions: Dict[str, Position] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'cash': str(self.cash),
            'equity': str(self.equity),
            'positions': {symbol: pos.to_dict() for symbol, pos in sorted(self.positions.items())},
        }


class Ledger:
    """
    Cash and position book for one simulation run.

    No component other than the engine that owns the ledger mutates it.
    """

    def __init__(self, initial_cash: Decimal):
        """
        Initialize the ledger.

        Args:
            initial_cash: Starting cash amount
        """
        initial_cash = to_decimal(initial_cash)
        if not initial_cash.is_finite() or initial_cash < 0:
            raise ValueError(f"Initial cash must be a finite non-negative amount, got {initial_cash}")

        self.initial_cash = initial_cash
        self.cash = initial_cash
        self.positions: Dict[str, Position] = {}

        self.realized_pnl = Decimal('0')
        self.total_commission = Decimal('0')

        logger.debug(f"Ledger initialized with ${initial_cash:,.2f}")

    @staticmethod
    def _check_fill_arguments(quantity: int, fill_price: Decimal, commission: Decimal) -> None:
        if quantity <= 0:
            raise ValueError(f"Fill quantity must be positive, got {quantity}")
        if not fill_price.is_finite() or fill_price <= 0:
            raise ValueError(f"Fill price must be a finite positive amount, got {fill_price}")
        if not commission.is_finite() or commission < 0:
            raise ValueError(f"Commission must be a finite non-negative amount, got {commission}")

    def apply_buy_fill(
        self,
        symbol: str,
        quantity: int,
        fill_price: Decimal,
        commission: Decimal,
        timestamp: datetime,
        slippage: Decimal = Decimal('0')
    ) -> FillResult:
        """
        Debit cash and add to the position for a buy fill.

        Args:
            symbol: Trading symbol
            quantity: Quantity bought
            fill_price: Execution price
            commission: Commission charged
            timestamp: Execution time
            slippage: Per-unit slippage already included in fill_price

        Returns:
            FILLED, or REJECTED_INSUFFICIENT_FUNDS with no state change
        """
        fill_price = to_decimal(fill_price)
        commission = to_decimal(commission)
        self._check_fill_arguments(quantity, fill_price, commission)

        cost = fill_price * quantity + commission
        if cost > self.cash:
            logger.debug(f"Rejected buy {symbol} {quantity} @ ${fill_price}: "
                         f"cost ${cost} exceeds cash ${self.cash}")
            return FillResult(FillOutcome.REJECTED_INSUFFICIENT_FUNDS)

        self.cash -= cost
        self.total_commission += commission

        position = self.positions.get(symbol)
        if position is None:
            position = Position(symbol=symbol)
            self.positions[symbol] = position

        if position.quantity == 0:
            position.avg_price = fill_price
        else:
            position.avg_price = (
                (position.avg_price * position.quantity + fill_price * quantity)
                / (position.quantity + quantity)
            )
        position.quantity += quantity
        position.update_market_price(fill_price)

        fill = Fill(
            symbol=symbol,
            side=OrderSide.BUY,
            quantity=quantity,
            fill_price=fill_price,
            commission=commission,
            timestamp=timestamp,
            slippage=to_decimal(slippage)
        )
        logger.debug(f"Position after fill - {symbol}: {position.quantity} shares, "
                     f"avg price: ${position.avg_price}")
        return FillResult(FillOutcome.FILLED, fill=fill)

    def apply_sell_fill(
        self,
        symbol: str,
        quantity: int,
        fill_price: Decimal,
        commission: Decimal,
        timestamp: datetime,
        slippage: Decimal = Decimal('0')
    ) -> FillResult:
        """
        Credit cash and reduce the position for a sell fill.

        Realized P&L is (fill_price - avg_price) * quantity - commission.

        Returns:
            FILLED with realized P&L, REJECTED_INSUFFICIENT_POSITION when
            more than the held quantity is sold, or REJECTED_INSUFFICIENT_FUNDS
            when the commission exceeds proceeds plus cash. Rejections leave
            the ledger unchanged.
        """
        fill_price = to_decimal(fill_price)
        commission = to_decimal(commission)
        self._check_fill_arguments(quantity, fill_price, commission)

        position = self.positions.get(symbol)
        if position is None or quantity > position.quantity:
            held = position.quantity if position else 0
            logger.debug(f"Rejected sell {symbol} {quantity}: only {held} held")
            return FillResult(FillOutcome.REJECTED_INSUFFICIENT_POSITION)

        proceeds = fill_price * quantity - commission
        if self.cash + proceeds < 0:
            logger.debug(f"Rejected sell {symbol} {quantity} @ ${fill_price}: "
                         f"commission ${commission} exceeds proceeds plus cash ${self.cash}")
            return FillResult(FillOutcome.REJECTED_INSUFFICIENT_FUNDS)

        realized_pnl = (fill_price - position.avg_price) * quantity - commission

        self.cash += proceeds
        self.total_commission += commission
        self.realized_pnl += realized_pnl

        position.quantity -= quantity
        position.realized_pnl += realized_pnl
        position.update_market_price(fill_price)

        if position.quantity == 0:
            del self.positions[symbol]

        fill = Fill(
            symbol=symbol,
            side=OrderSide.SELL,
            quantity=quantity,
            fill_price=fill_price,
            commission=commission,
            timestamp=timestamp,
            slippage=to_decimal(slippage)
        )
        logger.debug(f"Position after fill - {symbol}: {position.quantity} shares, "
                     f"realized P&L: ${realized_pnl}")
        return FillResult(FillOutcome.FILLED, fill=fill, realized_pnl=realized_pnl)

    def mark_to_market(self, symbol: str, last_close: Decimal) -> None:
        """Revalue a held position at the latest close. Cash is not touched."""
        position = self.positions.get(symbol)
        if position is not None:
            position.update_market_price(to_decimal(last_close))

    def get_position(self, symbol: str) -> Optional[Position]:
        return self.positions.get(symbol)

    def get_position_size(self, symbol: str) -> int:
        """Get current position size for a symbol."""
        position = self.positions.get(symbol)
        return position.quantity if position else 0

    def market_value(self) -> Decimal:
        return sum((pos.market_value for pos in self.positions.values()), Decimal('0'))

    def unrealized_pnl(self) -> Decimal:
        return sum((pos.unrealized_pnl for pos in self.positions.values()), Decimal('0'))

    def equity(self) -> Decimal:
        """Calculate total equity: cash plus mark-to-market position value."""
        return self.cash + self.market_value()

    def check_invariants(self, last_closes: Optional[Mapping[str, Decimal]] = None) -> None:
        """
        Verify the accounting invariants.

        Args:
            last_closes: Latest close per symbol. When given, every held
                position is valued at its symbol's latest close.

        Raises:
            LedgerInvariantError: If cash is negative, a held quantity is not
                positive, or equity differs from cash plus marked positions
        """
        if self.cash < 0:
            raise LedgerInvariantError(f"Negative cash balance: {self.cash}")

        marked = Decimal('0')
        for symbol, position in self.positions.items():
            if position.quantity <= 0:
                raise LedgerInvariantError(
                    f"Held position {symbol} has non-positive quantity {position.quantity}"
                )
            if last_closes is None:
                price = position.last_price
            elif symbol in last_closes:
                price = last_closes[symbol]
            else:
                raise LedgerInvariantError(f"Held position {symbol} has never been marked")
            marked += price * position.quantity

        if self.equity() != self.cash + marked:
            raise LedgerInvariantError(
                f"Equity {self.equity()} does not match cash {self.cash} plus marked positions {marked}"
            )

    def snapshot(self, timestamp: datetime) -> PortfolioSnapshot:
        """Capture cash, equity and a copy of every position."""
        positions = {symbol: replace(pos) for symbol, pos in self.positions.items()}
        return PortfolioSnapshot(
            timestamp=timestamp,
            cash=self.cash,
            equity=self.equity(),
            positions=positions
        )

    def __repr__(self) -> str:
        """String representation of the ledger."""
        return (f"Ledger(equity=${self.equity():,.2f}, "
                f"cash=${self.cash:,.2f}, "
                f"positions={len(self.positions)})")
