"""
Main simulation engine that replays a bar sequence through a strategy.

This module contains the BacktestEngine class that coordinates the strategy,
order sizing, cost models, the ledger and the trade journal, and hands the
resulting snapshots and trades to the performance layer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .models import Bar, Fill, Order, OrderSide, Signal, TradeIntent, to_decimal
from .ledger import FillOutcome, FillResult, Ledger, PortfolioSnapshot
from .journal import TradeJournal
from .data_handler import validate_bars
from ..execution.commissions import CommissionModel, NoCommissionModel
from ..execution.slippage import SlippageModel, NoSlippageModel
from ..analysis.performance import BacktestResult, PerformanceAnalyzer, analyze


logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    """Lifecycle of an engine. A run happens exactly once."""
    NOT_STARTED = "NOT_STARTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


REJECTION_REASONS = {
    FillOutcome.REJECTED_INSUFFICIENT_FUNDS: "insufficient cash",
    FillOutcome.REJECTED_INSUFFICIENT_POSITION: "insufficient position",
    FillOutcome.REJECTED_INVALID_PRICE: "non-positive fill price",
}


@dataclass(frozen=True)
class Rejection:
    """An order the ledger refused at admission."""
    timestamp: datetime
    symbol: str
    side: OrderSide
    quantity: int
    price: Decimal
    outcome: FillOutcome

    @property
    def reason(self) -> str:
        return REJECTION_REASONS[self.outcome]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'symbol': self.symbol,
            'side': self.side.value,
            'quantity': self.quantity,
            'price': str(self.price),
            'outcome': self.outcome.value,
            'reason': self.reason,
        }


class BacktestEngine:
    """
    Bar-driven simulation engine.

    For every bar the strategy is asked for a signal, a non-zero signal is
    sized into a market order, priced through the slippage and commission
    models and submitted to the ledger. Admission rejections are recorded
    and the loop continues. After every bar the bar's symbol is marked to
    its close, the ledger invariants are checked and a snapshot is taken.
    """

    def __init__(
        self,
        strategy: Any,
        initial_cash: Decimal = Decimal('100000'),
        commission_model: Optional[CommissionModel] = None,
        slippage_model: Optional[SlippageModel] = None,
        position_fraction: Decimal = Decimal('0.1'),
        risk_free_rate: float = 0.0,
        confidence: float = 0.95,
        seed: Optional[int] = 42,
        default_symbol: str = "UNKNOWN"
    ):
        """
        Initialize the simulation engine.

        Args:
            strategy: Object with ``next(bar) -> Optional[Signal]`` and an
                optional ``init(bars)``
            initial_cash: Starting cash
            commission_model: Commission model (zero commission when None)
            slippage_model: Slippage model (zero slippage when None)
            position_fraction: Fraction of current cash committed per order
            risk_free_rate: Annual risk-free rate for Sharpe and Sortino
            confidence: Confidence level for VaR and CVaR
            seed: Seed for Monte Carlo VaR
            default_symbol: Symbol used for bars that carry none
        """
        self.strategy = strategy
        self.initial_cash = to_decimal(initial_cash)
        self.commission_model = commission_model or NoCommissionModel()
        self.slippage_model = slippage_model or NoSlippageModel()
        self.position_fraction = to_decimal(position_fraction)
        self.analyzer = PerformanceAnalyzer(risk_free_rate, confidence, seed)
        self.default_symbol = default_symbol

        self.state = EngineState.NOT_STARTED
        self.ledger: Optional[Ledger] = None
        self.journal = TradeJournal()
        self.snapshots: List[PortfolioSnapshot] = []
        self.fills: List[Fill] = []
        self.rejections: List[Rejection] = []
        self.last_closes: Dict[str, Decimal] = {}

        logger.info(f"BacktestEngine initialized: cash=${self.initial_cash:,.2f}, "
                    f"position fraction={self.position_fraction}, "
                    f"commission={type(self.commission_model).__name__}, "
                    f"slippage={type(self.slippage_model).__name__}")

    def _validate(self, bars: Sequence[Bar]) -> None:
        if not self.initial_cash.is_finite() or self.initial_cash <= 0:
            raise ValueError(f"Initial cash must be positive, got {self.initial_cash}")
        if not self.position_fraction.is_finite() or not 0 < self.position_fraction <= 1:
            raise ValueError(
                f"Position fraction must be in (0, 1], got {self.position_fraction}"
            )
        validate_bars(bars, default_symbol=self.default_symbol)

    def _symbol(self, bar: Bar) -> str:
        return bar.symbol or self.default_symbol

    def _size_order(self, close: Decimal) -> int:
        """Fixed fraction of current cash divided by the close, floored."""
        notional = self.ledger.cash * self.position_fraction
        return int((notional / close).to_integral_value(rounding=ROUND_FLOOR))

    def _execute(self, order: Order, bar: Bar) -> FillResult:
        """
        Price an order through the cost models and submit it to the ledger.

        Slippage that drives a sell's fill price to zero or below rejects the
        order with REJECTED_INVALID_PRICE instead of reaching the ledger.
        """
        fill_price = self.slippage_model.fill_price(order, bar.close)
        slippage = fill_price - bar.close

        if fill_price <= 0:
            result = FillResult(FillOutcome.REJECTED_INVALID_PRICE)
        else:
            commission = self.commission_model.calculate(
                TradeIntent(order.symbol, order.side, order.quantity, fill_price)
            )
            if order.side == OrderSide.BUY:
                result = self.ledger.apply_buy_fill(
                    order.symbol, order.quantity, fill_price, commission, bar.timestamp, slippage
                )
            else:
                result = self.ledger.apply_sell_fill(
                    order.symbol, order.quantity, fill_price, commission, bar.timestamp, slippage
                )

        if result.filled:
            self.fills.append(result.fill)
            if order.side == OrderSide.BUY:
                self.journal.record_buy(result.fill)
            else:
                self.journal.record_sell(result.fill, result.realized_pnl)
            logger.debug(f"Filled {order.side.value} {order.quantity} {order.symbol} "
                         f"@ ${fill_price} (commission ${result.fill.commission})")
        else:
            rejection = Rejection(
                timestamp=bar.timestamp,
                symbol=order.symbol,
                side=order.side,
                quantity=order.quantity,
                price=fill_price,
                outcome=result.outcome
            )
            self.rejections.append(rejection)
            logger.debug(f"Rejected {order.side.value} {order.quantity} {order.symbol} "
                         f"@ ${fill_price}: {rejection.reason}")

        return result

    def _process_bar(self, bar: Bar) -> None:
        symbol = self._symbol(bar)
        signal: Optional[Signal] = self.strategy.next(bar)

        if signal is not None and signal.side is not None:
            quantity = self._size_order(bar.close)
            if quantity > 0:
                order = Order(
                    symbol=symbol,
                    side=signal.side,
                    quantity=quantity,
                    timestamp=bar.timestamp
                )
                self._execute(order, bar)
            else:
                logger.debug(f"Skipped {signal.side.value} signal on {symbol} at "
                             f"{bar.timestamp}: sized quantity is zero")

        self.last_closes[symbol] = bar.close
        self.ledger.mark_to_market(symbol, bar.close)
        self.ledger.check_invariants(self.last_closes)
        self.snapshots.append(self.ledger.snapshot(bar.timestamp))

    def run(self, bars: Sequence[Bar]) -> BacktestResult:
        """
        Run the simulation.

        Args:
            bars: Bars in non-decreasing timestamp order

        Returns:
            BacktestResult with snapshots, trades, metrics and stress results

        Raises:
            RuntimeError: If the engine has already been run
            ValueError: If the inputs violate the engine's contract
        """
        if self.state != EngineState.NOT_STARTED:
            raise RuntimeError(f"Engine cannot be run from state {self.state.value}")

        bars = list(bars)
        self._validate(bars)

        self.state = EngineState.RUNNING
        self.ledger = Ledger(self.initial_cash)
        logger.info(f"Starting simulation over {len(bars)} bars "
                    f"({bars[0].timestamp} to {bars[-1].timestamp})")

        init = getattr(self.strategy, 'init', None)
        if callable(init):
            init(bars)

        for bar in bars:
            self._process_bar(bar)

        self.state = EngineState.COMPLETED
        logger.info(f"Simulation completed: {len(self.fills)} fills, "
                    f"{len(self.rejections)} rejections, final equity ${self.ledger.equity():,.2f}")

        return analyze(
            equity=self.snapshots,
            trades=self.journal.trades,
            initial_cash=self.initial_cash,
            analyzer=self.analyzer,
            fills=self.fills,
            rejections=self.rejections
        )

    def __repr__(self) -> str:
        """String representation of the engine."""
        return (f"BacktestEngine(strategy={type(self.strategy).__name__}, "
                f"cash=${self.initial_cash:,.2f}, state={self.state.value})")
