"""Tests for performance analysis and results."""

import json
import math
from datetime import datetime, timedelta
from decimal import Decimal

import numpy as np
import pandas as pd
import pytest

from portsim.analysis.performance import (
    PerformanceAnalyzer,
    alpha,
    annualized_return,
    calculate_trade_metrics,
    calmar_ratio,
    information_ratio,
    omega_ratio,
    recovery_factor,
    sharpe_ratio,
    sortino_ratio,
    total_return,
)
from portsim.core.engine import BacktestEngine
from portsim.core.journal import Trade
from portsim.core.models import OrderSide
from portsim.strategies import AlternatingStrategy


T0 = datetime(2024, 1, 1)


def closed_trade(pnl):
    return Trade(
        symbol="AAPL",
        side=OrderSide.BUY,
        entry_time=T0,
        entry_price=Decimal('100'),
        quantity=10,
        exit_time=T0 + timedelta(days=1),
        exit_price=Decimal('100'),
        pnl=Decimal(str(pnl))
    )


def open_trade():
    return Trade(symbol="AAPL", side=OrderSide.BUY, entry_time=T0, entry_price=Decimal('100'), quantity=10)


class TestReturnMetrics:
    """Test return-based ratios."""

    def test_total_and_annualized_return(self):
        """Compounded to a 252-period year over N observations."""
        equity = [100, 105, 110]
        assert total_return(equity) == pytest.approx(0.10)
        assert annualized_return(equity) == pytest.approx(1.1 ** (252 / 3) - 1)

    def test_return_sentinels(self):
        """Short or wiped-out curves."""
        assert total_return([100]) == 0.0
        assert annualized_return([100]) == 0.0
        assert annualized_return([100, 0]) == -1.0

    def test_sharpe_ratio(self):
        """Mean excess over sample std, annualized."""
        returns = np.array([0.01, -0.005, 0.02, 0.0, 0.007])
        expected = returns.mean() / returns.std(ddof=1) * np.sqrt(252)
        assert sharpe_ratio(returns) == pytest.approx(expected)

    def test_sharpe_with_risk_free_rate(self):
        """The daily risk-free rate is subtracted."""
        returns = np.array([0.01, -0.005, 0.02, 0.0, 0.007])
        excess = returns - 0.0252 / 252
        expected = excess.mean() / excess.std(ddof=1) * np.sqrt(252)
        assert sharpe_ratio(returns, risk_free_rate=0.0252) == pytest.approx(expected)

    def test_sharpe_zero_std(self):
        """Constant returns give zero."""
        assert sharpe_ratio([0.01, 0.01, 0.01]) == 0.0
        assert sharpe_ratio([]) == 0.0

    def test_sortino_ratio(self):
        """Downside deviation in the denominator."""
        returns = np.array([0.02, -0.01, 0.03, -0.03])
        downside = np.sqrt(np.mean(np.array([-0.01, -0.03]) ** 2))
        expected = returns.mean() / downside * np.sqrt(252)
        assert sortino_ratio(returns) == pytest.approx(expected)

    def test_sortino_sentinels(self):
        """Infinite with no downside, zero when empty."""
        assert sortino_ratio([0.01, 0.02]) == math.inf
        assert sortino_ratio([]) == 0.0

    def test_calmar_ratio(self):
        """Annualized return over maximum drawdown."""
        equity = [100, 120, 90, 130]
        assert calmar_ratio(equity) == pytest.approx(annualized_return(equity) / 0.25)
        assert calmar_ratio([100, 101, 102]) == 0.0

    def test_recovery_factor(self):
        """Total return over maximum drawdown."""
        assert recovery_factor([100, 120, 90, 130]) == pytest.approx(0.30 / 0.25)

    def test_omega_ratio(self):
        """Gains over losses around the threshold."""
        assert omega_ratio([0.02, -0.01, 0.01]) == pytest.approx(3.0)
        assert omega_ratio([0.01, 0.02]) == math.inf
        assert omega_ratio([]) == 0.0

    def test_information_ratio(self):
        """Active return over tracking error; lengths must match."""
        returns = np.array([0.01, 0.02, -0.01, 0.015])
        bench = np.array([0.005, 0.01, -0.005, 0.01])
        active = returns - bench
        expected = active.mean() / active.std(ddof=1) * np.sqrt(252)

        assert information_ratio(returns, bench) == pytest.approx(expected)
        with pytest.raises(ValueError, match="same length"):
            information_ratio(returns, bench[:2])

    def test_alpha_of_benchmark_is_zero(self):
        """The benchmark has no alpha against itself."""
        bench = np.array([0.01, -0.02, 0.015, 0.003])
        assert alpha(bench, bench) == pytest.approx(0.0, abs=1e-12)


class TestTradeMetrics:
    """Test trade statistics."""

    def test_mixed_trades(self):
        """Win rate, profit factor and expectancy from closed trades."""
        trades = [closed_trade(100), closed_trade(-50), closed_trade(200), closed_trade(-50), open_trade()]
        stats = calculate_trade_metrics(trades)

        assert stats['total_trades'] == 4
        assert stats['open_trades'] == 1
        assert stats['win_rate'] == pytest.approx(0.5)
        assert stats['profit_factor'] == pytest.approx(3.0)
        assert stats['expectancy'] == pytest.approx(50.0)
        assert stats['avg_win'] == pytest.approx(150.0)
        assert stats['avg_loss'] == pytest.approx(-50.0)
        assert stats['largest_win'] == pytest.approx(200.0)
        assert stats['largest_loss'] == pytest.approx(-50.0)
        assert stats['payoff_ratio'] == pytest.approx(3.0)

    def test_no_closed_trades(self):
        """Zero sentinels; open trades are ignored."""
        stats = calculate_trade_metrics([open_trade()])

        assert stats['total_trades'] == 0
        assert stats['profit_factor'] == 0.0
        assert stats['win_rate'] == 0.0
        assert stats['expectancy'] == 0.0

    def test_only_winners(self):
        """Profits without losses give an infinite profit factor."""
        stats = calculate_trade_metrics([closed_trade(10), closed_trade(20)])

        assert stats['profit_factor'] == math.inf
        assert stats['win_rate'] == 1.0


class TestPerformanceAnalyzer:
    """Test the metrics bundle."""

    def test_calculate_metrics(self):
        """Fields line up with the free functions."""
        equity = [100000, 101000, 99000, 102000, 103000]
        metrics = PerformanceAnalyzer(seed=1).calculate_metrics(equity, [closed_trade(10)])

        assert metrics.total_return == pytest.approx(0.03)
        assert metrics.max_drawdown == pytest.approx(2000 / 101000)
        assert metrics.max_drawdown_peak == 1
        assert metrics.max_drawdown_trough == 2
        assert metrics.cvar <= metrics.var
        assert metrics.periods == 5
        assert metrics.total_trades == 1
        assert metrics.information_ratio is None

    def test_benchmark_metrics(self):
        """Benchmark-relative fields are filled when a benchmark is given."""
        equity = [100, 101, 103, 102, 105]
        bench = [0.005, 0.01, -0.005, 0.02]
        metrics = PerformanceAnalyzer().calculate_metrics(equity, [], benchmark_returns=bench)

        assert metrics.beta is not None
        assert metrics.information_ratio is not None
        assert metrics.alpha is not None

    def test_invalid_confidence(self):
        """Confidence must be inside (0, 1)."""
        with pytest.raises(ValueError):
            PerformanceAnalyzer(confidence=0.0)


class TestBacktestResult:
    """Test the result artifact."""

    @pytest.fixture
    def result(self, linear_bars):
        return BacktestEngine(AlternatingStrategy(period=10)).run(linear_bars)

    def test_to_json_round_trips_through_json(self, result):
        """Serialized output is valid JSON with every section."""
        data = json.loads(result.to_json())

        assert set(data) == {'initial_cash', 'equity', 'trades', 'metrics', 'fills', 'rejections', 'stress'}
        assert len(data['equity']) == 100
        assert len(data['trades']) == 5
        assert data['initial_cash'] == '100000'

    def test_equity_curve_dataframe(self, result):
        """Indexed by timestamp with cash, equity and drawdown."""
        curve = result.get_equity_curve()

        assert isinstance(curve, pd.DataFrame)
        assert list(curve.columns) == ['cash', 'equity', 'drawdown']
        assert len(curve) == 100
        assert (curve['drawdown'] <= 0).all()

    def test_trades_dataframe(self, result):
        """One row per trade."""
        trades = result.get_trades_df()
        assert len(trades) == 5
        assert trades['pnl'].notna().all()

    def test_print_summary(self, result, capsys):
        """Summary includes the headline numbers."""
        result.print_summary()
        out = capsys.readouterr().out

        assert "BACKTEST RESULTS SUMMARY" in out
        assert "Sharpe Ratio" in out
        assert "Closed Trades: 5" in out
