"""
Trade journal: round-trip trade records derived from fills.

Matching policy: one open trade per symbol. A buy with no open trade opens
one, a buy while a trade is open scales into it (volume-weighted entry
price, accumulated costs). A sell closes the open trade for its symbol
whatever its quantity and carries the ledger's realized P&L for that fill.
Quantity left over after a partial close is not tracked by any trade until
the next buy opens a new one. This attribution affects per-trade P&L only,
never portfolio equity.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from .models import Fill, OrderSide


logger = logging.getLogger(__name__)


@dataclass
class Trade:
    """
    A logical round trip from entry to exit.

    Attributes:
        symbol: Trading symbol
        side: Entry side (always BUY in the long-only model)
        entry_time: Time of the opening fill
        entry_price: Volume-weighted entry price
        quantity: Entry quantity
        commission: Commission paid on entry fills
        slippage: Total slippage cost paid on entry fills
        exit_time: Time of the closing fill
        exit_price: Price of the closing fill
        exit_commission: Commission paid on the closing fill
        pnl: Realized P&L of the closing fill
    """
    symbol: str
    side: OrderSide
    entry_time: datetime
    entry_price: Decimal
    quantity: int
    commission: Decimal = Decimal('0')
    slippage: Decimal = Decimal('0')
    exit_time: Optional[datetime] = None
    exit_price: Optional[Decimal] = None
    exit_commission: Optional[Decimal] = None
    pnl: Optional[Decimal] = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    def to_dict(self) -> Dict:
        def fmt(value):
            return None if value is None else str(value)

        return {
            'symbol': self.symbol,
            'side': self.side.value,
            'entry_time': self.entry_time.isoformat(),
            'entry_price': str(self.entry_price),
            'quantity': self.quantity,
            'commission': str(self.commission),
            'slippage': str(self.slippage),
            'exit_time': self.exit_time.isoformat() if self.exit_time else None,
            'exit_price': fmt(self.exit_price),
            'exit_commission': fmt(self.exit_commission),
            'pnl': fmt(self.pnl),
        }


class TradeJournal:
    """Append-only record of trades for one run."""

    def __init__(self):
        self._trades: List[Trade] = []
        self._open: Dict[str, Trade] = {}

    @property
    def trades(self) -> List[Trade]:
        """All trades in the order they were opened."""
        return list(self._trades)

    def open_trade(self, symbol: str) -> Optional[Trade]:
        return self._open.get(symbol)

    def open_trades(self) -> List[Trade]:
        return [trade for trade in self._trades if trade.is_open]

    def closed_trades(self) -> List[Trade]:
        return [trade for trade in self._trades if not trade.is_open]

    def record_buy(self, fill: Fill) -> Trade:
        """Open a trade, or scale into the open trade for the symbol."""
        if fill.side != OrderSide.BUY:
            raise ValueError(f"Expected a BUY fill, got {fill.side}")

        slippage_cost = abs(fill.slippage) * fill.quantity
        trade = self._open.get(fill.symbol)

        if trade is None:
            trade = Trade(
                symbol=fill.symbol,
                side=OrderSide.BUY,
                entry_time=fill.timestamp,
                entry_price=fill.fill_price,
                quantity=fill.quantity,
                commission=fill.commission,
                slippage=slippage_cost
            )
            self._trades.append(trade)
            self._open[fill.symbol] = trade
            logger.debug(f"Opened trade {fill.symbol} {fill.quantity} @ ${fill.fill_price}")
        else:
            total_quantity = trade.quantity + fill.quantity
            trade.entry_price = (
                (trade.entry_price * trade.quantity + fill.fill_price * fill.quantity)
                / total_quantity
            )
            trade.quantity = total_quantity
            trade.commission += fill.commission
            trade.slippage += slippage_cost
            logger.debug(f"Scaled into trade {fill.symbol}: {trade.quantity} @ ${trade.entry_price}")

        return trade

    def record_sell(self, fill: Fill, realized_pnl: Decimal) -> Optional[Trade]:
        """
        Close the open trade for the fill's symbol.

        Returns:
            The closed trade, or None when no trade was open for the symbol
        """
        if fill.side != OrderSide.SELL:
            raise ValueError(f"Expected a SELL fill, got {fill.side}")

        trade = self._open.pop(fill.symbol, None)
        if trade is None:
            logger.debug(f"Sell of {fill.symbol} with no open trade, journal unchanged")
            return None

        trade.exit_time = fill.timestamp
        trade.exit_price = fill.fill_price
        trade.exit_commission = fill.commission
        trade.pnl = realized_pnl
        logger.debug(f"Closed trade {fill.symbol} @ ${fill.fill_price}, P&L ${realized_pnl}")
        return trade

    def __len__(self) -> int:
        return len(self._trades)
