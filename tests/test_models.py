"""Tests for the shared domain types."""

from datetime import datetime
from decimal import Decimal

from portsim.core.models import Bar, Fill, OrderSide, Signal, TradeIntent, to_decimal


class TestBar:
    """Test bar construction."""

    def test_prices_are_coerced_to_decimal(self):
        """Float prices become exact decimals."""
        bar = Bar(timestamp=datetime(2024, 1, 1), open=100.1, high=101, low=99.5, close=100.25)

        assert bar.close == Decimal('100.25')
        assert bar.open == Decimal('100.1')
        assert isinstance(bar.high, Decimal)
        assert bar.symbol is None

    def test_non_finite_price_detected(self):
        """A NaN price makes the bar non-finite."""
        bar = Bar(timestamp=datetime(2024, 1, 1), open=1, high=1, low=1, close=float('nan'))
        assert not bar.is_finite

        good = Bar(timestamp=datetime(2024, 1, 1), open=1, high=1, low=1, close=1)
        assert good.is_finite


class TestSignal:
    """Test signal direction."""

    def test_side_from_sign(self):
        """Only the sign of the value matters."""
        ts = datetime(2024, 1, 1)
        assert Signal(ts, 1.0).side == OrderSide.BUY
        assert Signal(ts, 0.3).side == OrderSide.BUY
        assert Signal(ts, -2.0).side == OrderSide.SELL
        assert Signal(ts, 0.0).side is None


class TestFill:
    """Test fill amounts."""

    def test_net_amount_by_side(self):
        """Buys cost notional plus commission, sells return notional less commission."""
        ts = datetime(2024, 1, 1)
        buy = Fill("AAPL", OrderSide.BUY, 10, Decimal('100'), Decimal('1'), ts)
        sell = Fill("AAPL", OrderSide.SELL, 10, Decimal('110'), Decimal('1'), ts)

        assert buy.gross_amount == Decimal('1000')
        assert buy.net_amount == Decimal('-1001')
        assert sell.net_amount == Decimal('1099')

    def test_trade_intent_notional(self):
        """Notional is price times quantity."""
        intent = TradeIntent("AAPL", OrderSide.BUY, 3, Decimal('10.5'))
        assert intent.notional == Decimal('31.5')

    def test_to_decimal_avoids_float_artefacts(self):
        """Floats are converted through their string form."""
        assert to_decimal(0.1) == Decimal('0.1')
        assert to_decimal(Decimal('2.5')) == Decimal('2.5')
