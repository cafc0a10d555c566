"""Tests for the simulation engine."""

from datetime import timedelta
from decimal import Decimal

import pytest

from portsim.core.engine import BacktestEngine, EngineState
from portsim.core.ledger import FillOutcome
from portsim.core.models import Bar, OrderSide
from portsim.execution.commissions import FixedCommissionModel
from portsim.execution.slippage import FixedBpsSlippageModel, SquareRootSlippageModel
from portsim.strategies import AlternatingStrategy, BuyAndHoldStrategy


class TestScenarios:
    """End-to-end runs over synthetic bars."""

    def test_buy_and_hold_on_rising_prices(self, linear_bars):
        """One open trade, rising equity, no drawdown."""
        result = BacktestEngine(BuyAndHoldStrategy(), initial_cash=Decimal('100000')).run(linear_bars)

        assert len(result.trades) == 1
        assert result.trades[0].is_open
        assert result.trades[0].quantity == 100
        assert result.equity[-1].equity > result.equity[0].equity
        assert result.equity[0].equity == Decimal('100000')
        assert result.equity[-1].equity == Decimal('104950')
        assert result.metrics.max_drawdown == 0
        assert result.metrics.total_trades == 0
        assert result.metrics.open_trades == 1

    def test_alternating_with_fixed_commission(self, linear_bars):
        """Commission costs at least ten per closed trade."""
        free = BacktestEngine(AlternatingStrategy(period=10)).run(linear_bars)
        costly = BacktestEngine(
            AlternatingStrategy(period=10),
            commission_model=FixedCommissionModel(Decimal('10'))
        ).run(linear_bars)

        total_trades = costly.metrics.total_trades
        assert total_trades == 5
        assert free.final_cash == Decimal('95075')
        assert costly.final_cash == Decimal('94975')
        assert free.final_cash - costly.final_cash >= total_trades * 10
        assert costly.final_cash < free.final_cash

    def test_near_zero_cash_executes_nothing(self, make_bars, scripted):
        """No buy is ever affordable and the run still completes."""
        bars = make_bars([101 + i for i in range(50)])
        engine = BacktestEngine(scripted({}, default=1.0), initial_cash=Decimal('100'))
        result = engine.run(bars)

        assert result.fills == []
        assert result.trades == []
        assert engine.state == EngineState.COMPLETED
        assert all(s.equity == Decimal('100') for s in result.equity)


class TestEngineLoop:
    """Test per-bar behaviour."""

    def test_one_snapshot_per_bar(self, linear_bars):
        """Every bar produces exactly one snapshot, in order."""
        result = BacktestEngine(BuyAndHoldStrategy()).run(linear_bars)

        assert len(result.equity) == len(linear_bars)
        assert [s.timestamp for s in result.equity] == [b.timestamp for b in linear_bars]

    def test_sizing_is_fraction_of_cash(self, make_bars, scripted):
        """Quantity is floor(cash * fraction / close)."""
        bars = make_bars([30, 30])
        result = BacktestEngine(scripted({0: 1.0}), initial_cash=Decimal('1000')).run(bars)

        assert result.fills[0].quantity == 3

    def test_slippage_and_commission_applied(self, make_bars, scripted):
        """Fill price moves against the trade and commission is charged."""
        bars = make_bars([100, 100])
        result = BacktestEngine(
            scripted({0: 1.0}),
            initial_cash=Decimal('10000'),
            commission_model=FixedCommissionModel(Decimal('1')),
            slippage_model=FixedBpsSlippageModel(Decimal('10'))
        ).run(bars)

        fill = result.fills[0]
        assert fill.fill_price == Decimal('100.1')
        assert fill.slippage == Decimal('0.1')
        assert fill.commission == Decimal('1')
        assert result.final_cash == Decimal('10000') - Decimal('10') * Decimal('100.1') - 1

    def test_insufficient_funds_recorded_as_rejection(self, make_bars, scripted):
        """A rejected buy is recorded and the loop continues."""
        bars = make_bars([100, 100, 100])
        result = BacktestEngine(
            scripted({0: 1.0, 2: 1.0}),
            initial_cash=Decimal('100'),
            commission_model=FixedCommissionModel(Decimal('10')),
            position_fraction=Decimal('1')
        ).run(bars)

        assert len(result.rejections) == 2
        assert result.rejections[0].outcome == FillOutcome.REJECTED_INSUFFICIENT_FUNDS
        assert result.rejections[0].reason == "insufficient cash"
        assert result.fills == []
        assert len(result.equity) == 3

    def test_sell_without_position_rejected(self, make_bars, scripted):
        """Selling with nothing held is rejected, never shorted."""
        bars = make_bars([100, 100])
        result = BacktestEngine(scripted({0: -1.0})).run(bars)

        assert result.rejections[0].outcome == FillOutcome.REJECTED_INSUFFICIENT_POSITION
        assert result.final_cash == Decimal('100000')

    def test_sell_commission_exceeding_cash_rejected(self, make_bars, scripted):
        """A sell whose commission cannot be paid is rejected, the run completes."""
        engine = BacktestEngine(
            scripted({0: 1.0, 1: -1.0}),
            initial_cash=Decimal('20'),
            commission_model=FixedCommissionModel(Decimal('10'))
        )
        result = engine.run(make_bars([0.5, 0.5, 0.5]))

        assert engine.state == EngineState.COMPLETED
        assert len(result.fills) == 1
        assert result.rejections[0].outcome == FillOutcome.REJECTED_INSUFFICIENT_FUNDS
        assert result.rejections[0].reason == "insufficient cash"
        assert result.final_cash == Decimal('8')
        assert all(s.cash >= 0 for s in result.equity)
        assert result.equity[-1].equity == Decimal('10')

    def test_non_positive_sell_fill_price_rejected(self, make_bars, scripted):
        """Slippage that pushes a sell price to zero or below is a rejection."""
        engine = BacktestEngine(
            scripted({0: 1.0, 1: -1.0}),
            initial_cash=Decimal('1000000'),
            slippage_model=SquareRootSlippageModel(Decimal('2000'))
        )
        result = engine.run(make_bars([100, 100, 100]))

        assert engine.state == EngineState.COMPLETED
        assert len(result.fills) == 1
        rejection = result.rejections[0]
        assert rejection.side == OrderSide.SELL
        assert rejection.outcome == FillOutcome.REJECTED_INVALID_PRICE
        assert rejection.reason == "non-positive fill price"
        assert rejection.price <= 0
        assert result.equity[-1].positions["TEST"].quantity == 1000

    def test_zero_signal_holds(self, make_bars, scripted):
        """A zero value produces no order."""
        result = BacktestEngine(scripted({}, default=0.0)).run(make_bars([100, 101]))

        assert result.fills == []
        assert result.rejections == []

    def test_strategy_init_called_once(self, linear_bars, scripted):
        """init sees the bars before the loop."""
        strategy = scripted({})
        BacktestEngine(strategy).run(linear_bars)

        assert strategy.init_calls == 1
        assert len(strategy.history) == len(linear_bars)

    def test_other_symbols_keep_last_close(self, make_bars, scripted):
        """Marking one symbol does not revalue another."""
        aapl = make_bars([100, 100, 100], symbol="AAPL")
        msft = make_bars([50, 60, 70], symbol="MSFT")
        bars = sorted(aapl + msft, key=lambda b: (b.timestamp, b.symbol))

        # Bar 1 is MSFT at 50: buys 20 shares
        result = BacktestEngine(scripted({1: 1.0}), initial_cash=Decimal('10000')).run(bars)

        # AAPL bar on day 2 still values MSFT at its day 1 close
        assert result.equity[4].positions["MSFT"].last_price == Decimal('60')
        assert result.equity[4].equity == Decimal('10200')
        assert result.equity[-1].equity == Decimal('10400')


class TestEngineInvariants:
    """Properties that hold for every run."""

    def _run(self, bars, **kwargs):
        return BacktestEngine(
            AlternatingStrategy(period=3),
            commission_model=FixedCommissionModel(Decimal('2')),
            slippage_model=FixedBpsSlippageModel(Decimal('5')),
            **kwargs
        ).run(bars)

    def test_cash_conservation(self, make_bars):
        """Final cash equals initial cash plus the net amount of every fill."""
        bars = make_bars([100, 98, 97, 101, 105, 103, 99, 96, 100, 104, 108, 107])
        result = self._run(bars, initial_cash=Decimal('50000'))

        net = sum((fill.net_amount for fill in result.fills), Decimal('0'))
        assert result.final_cash == Decimal('50000') + net

    def test_no_negative_balances(self, make_bars):
        """Cash and quantities stay non-negative in every snapshot."""
        bars = make_bars([100 + (i % 7) * 3 for i in range(60)])
        result = self._run(bars, initial_cash=Decimal('1000'), position_fraction=Decimal('1'))

        for snapshot in result.equity:
            assert snapshot.cash >= 0
            assert all(p.quantity > 0 for p in snapshot.positions.values())

    def test_deterministic_output(self, make_bars):
        """Identical inputs give identical serialized results."""
        bars = make_bars([100 + ((i * 37) % 11) - 5 for i in range(80)])

        assert self._run(bars).to_json() == self._run(bars).to_json()


class TestEngineValidation:
    """Input contract violations fail before the loop."""

    def test_empty_bars(self):
        """No bars, no run."""
        with pytest.raises(ValueError, match="empty"):
            BacktestEngine(BuyAndHoldStrategy()).run([])

    def test_non_positive_initial_cash(self, linear_bars):
        """Initial cash must be positive."""
        with pytest.raises(ValueError, match="Initial cash"):
            BacktestEngine(BuyAndHoldStrategy(), initial_cash=Decimal('0')).run(linear_bars)

    @pytest.mark.parametrize("fraction", ["0", "-0.1", "1.5"])
    def test_position_fraction_bounds(self, linear_bars, fraction):
        """Fraction must be in (0, 1]."""
        with pytest.raises(ValueError, match="Position fraction"):
            BacktestEngine(BuyAndHoldStrategy(), position_fraction=Decimal(fraction)).run(linear_bars)

    def test_non_finite_price(self, make_bars):
        """NaN closes are rejected."""
        bars = make_bars([100, 101])
        bad = Bar(bars[1].timestamp + timedelta(days=1), 1, 1, 1, float('nan'), symbol="TEST")
        with pytest.raises(ValueError, match="non-finite"):
            BacktestEngine(BuyAndHoldStrategy()).run(bars + [bad])

    def test_decreasing_timestamps(self, make_bars):
        """Bars must be in time order."""
        bars = make_bars([100, 101, 102])
        with pytest.raises(ValueError, match="earlier"):
            BacktestEngine(BuyAndHoldStrategy()).run(list(reversed(bars)))

    def test_duplicate_bars(self, make_bars):
        """The same symbol cannot appear twice at one timestamp."""
        bars = make_bars([100, 101])
        with pytest.raises(ValueError, match="Duplicate"):
            BacktestEngine(BuyAndHoldStrategy()).run([bars[0], bars[0], bars[1]])

    def test_run_twice_raises(self, linear_bars):
        """An engine runs exactly once."""
        engine = BacktestEngine(BuyAndHoldStrategy())
        engine.run(linear_bars)

        with pytest.raises(RuntimeError):
            engine.run(linear_bars)

    def test_invalid_confidence(self):
        """Confidence is checked at construction."""
        with pytest.raises(ValueError, match="Confidence"):
            BacktestEngine(BuyAndHoldStrategy(), confidence=1.5)
