"""
Performance analysis and results generation.

This module turns the snapshot sequence and trade journal of a run into
performance metrics, and packages everything into a serializable
BacktestResult.
"""

import json
import math
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..core.journal import Trade
from ..core.ledger import PortfolioSnapshot
from ..risk.metrics import (
    ArrayLike,
    STD_EPSILON,
    TRADING_DAYS,
    DrawdownInfo,
    calculate_returns,
    conditional_value_at_risk,
    beta,
    max_drawdown,
    sample_std,
    to_array,
    ulcer_index,
    value_at_risk,
    volatility,
    downside_deviation,
    drawdown_series,
)
from ..risk.stress import StressResult, stress_test


logger = logging.getLogger(__name__)


def total_return(equity: ArrayLike) -> float:
    """``e_last / e_first - 1``, 0.0 for fewer than two points or zero start."""
    arr = to_array(equity)
    if len(arr) < 2 or arr[0] == 0:
        return 0.0
    return float(arr[-1] / arr[0] - 1)


def annualized_return(equity: ArrayLike) -> float:
    """
    Compound the total return to a 252-period year.

    ``(1 + total) ** (252 / N) - 1`` with N the number of observations.
    A total loss of everything annualizes to -1.0.
    """
    arr = to_array(equity)
    if len(arr) < 2:
        return 0.0
    growth = 1 + total_return(arr)
    if growth <= 0:
        return -1.0
    return float(growth ** (TRADING_DAYS / len(arr)) - 1)


def sharpe_ratio(returns: ArrayLike, risk_free_rate: float = 0.0, annualized: bool = True) -> float:
    """Mean excess return over its standard deviation, 0.0 when std is zero."""
    arr = to_array(returns)
    excess = arr - risk_free_rate / TRADING_DAYS
    std = sample_std(excess)
    if std < STD_EPSILON:
        return 0.0

    sharpe = float(np.mean(excess)) / std
    return sharpe * math.sqrt(TRADING_DAYS) if annualized else sharpe


def sortino_ratio(returns: ArrayLike, risk_free_rate: float = 0.0, annualized: bool = True) -> float:
    """
    Mean excess return over the downside deviation.

    Returns ``inf`` when no return falls below the per-period risk-free
    target, and 0.0 for an empty series.
    """
    arr = to_array(returns)
    if len(arr) == 0:
        return 0.0

    target = risk_free_rate / TRADING_DAYS
    downside = downside_deviation(arr, target=target, annualized=False)
    if downside < STD_EPSILON:
        return float('inf')

    sortino = float(np.mean(arr - target)) / downside
    return sortino * math.sqrt(TRADING_DAYS) if annualized else sortino


def calmar_ratio(equity: ArrayLike) -> float:
    """Annualized return over maximum drawdown, 0.0 without a drawdown."""
    dd = max_drawdown(equity).value
    if dd == 0:
        return 0.0
    return annualized_return(equity) / dd


def information_ratio(returns: ArrayLike, benchmark_returns: ArrayLike, annualized: bool = True) -> float:
    """Mean active return over tracking error."""
    arr = to_array(returns)
    bench = to_array(benchmark_returns)
    if len(arr) != len(bench):
        raise ValueError(
            f"Returns and benchmark must have same length ({len(arr)} != {len(bench)})"
        )

    active = arr - bench
    std = sample_std(active)
    if std < STD_EPSILON:
        return 0.0

    ir = float(np.mean(active)) / std
    return ir * math.sqrt(TRADING_DAYS) if annualized else ir


def alpha(
    returns: ArrayLike,
    benchmark_returns: ArrayLike,
    risk_free_rate: float = 0.0,
    annualized: bool = True
) -> float:
    """Jensen's alpha versus a benchmark."""
    arr = to_array(returns)
    bench = to_array(benchmark_returns)
    b = beta(arr, bench)
    if len(arr) == 0:
        return 0.0

    rf = risk_free_rate / TRADING_DAYS
    a = float(np.mean(arr)) - (rf + b * (float(np.mean(bench)) - rf))
    return a * TRADING_DAYS if annualized else a


def omega_ratio(returns: ArrayLike, threshold: float = 0.0) -> float:
    """Gains above ``threshold`` over losses below it, ``inf`` with no losses."""
    arr = to_array(returns)
    gains = float(np.sum(arr[arr > threshold] - threshold))
    losses = float(np.sum(threshold - arr[arr < threshold]))
    if losses == 0:
        return float('inf') if gains > 0 else 0.0
    return gains / losses


def recovery_factor(equity: ArrayLike) -> float:
    """Total return over maximum drawdown."""
    dd = max_drawdown(equity).value
    return total_return(equity) / dd if dd > 0 else 0.0


def calculate_trade_metrics(trades: Sequence[Trade]) -> Dict[str, Any]:
    """
    Calculate trading statistics from closed trades.

    Open trades are ignored. ``profit_factor`` is 0.0 without closed trades
    and ``inf`` when there are profits but no losses. ``expectancy`` is the
    average realized P&L per closed trade.
    """
    closed = [trade for trade in trades if not trade.is_open and trade.pnl is not None]
    open_count = sum(1 for trade in trades if trade.is_open)

    if not closed:
        return {
            'total_trades': 0,
            'open_trades': open_count,
            'win_rate': 0.0,
            'profit_factor': 0.0,
            'expectancy': 0.0,
            'avg_win': 0.0,
            'avg_loss': 0.0,
            'largest_win': 0.0,
            'largest_loss': 0.0,
            'payoff_ratio': 0.0,
        }

    pnls = [float(trade.pnl) for trade in closed]
    winning_trades = [pnl for pnl in pnls if pnl > 0]
    losing_trades = [pnl for pnl in pnls if pnl < 0]

    win_rate = len(winning_trades) / len(pnls)

    total_wins = sum(winning_trades)
    total_losses = abs(sum(losing_trades))
    if total_losses > 0:
        profit_factor = total_wins / total_losses
    else:
        profit_factor = float('inf') if total_wins > 0 else 0.0

    avg_win = float(np.mean(winning_trades)) if winning_trades else 0.0
    avg_loss = float(np.mean(losing_trades)) if losing_trades else 0.0

    if avg_loss != 0:
        payoff_ratio = avg_win / abs(avg_loss)
    else:
        payoff_ratio = float('inf') if avg_win > 0 else 0.0

    return {
        'total_trades': len(pnls),
        'open_trades': open_count,
        'win_rate': win_rate,
        'profit_factor': profit_factor,
        'expectancy': float(np.mean(pnls)),
        'avg_win': avg_win,
        'avg_loss': avg_loss,
        'largest_win': max(winning_trades) if winning_trades else 0.0,
        'largest_loss': min(losing_trades) if losing_trades else 0.0,
        'payoff_ratio': payoff_ratio,
    }


@dataclass
class PerformanceMetrics:
    """Container for performance metrics."""

    # Returns
    total_return: float
    annualized_return: float
    volatility: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float

    # Risk metrics
    max_drawdown: float
    max_drawdown_peak: int
    max_drawdown_trough: int
    max_drawdown_duration: int
    ulcer_index: float
    var: float
    var_parametric: float
    var_monte_carlo: float
    cvar: float
    confidence: float

    # Trading metrics
    total_trades: int
    open_trades: int
    win_rate: float
    profit_factor: float
    expectancy: float
    avg_win: float
    avg_loss: float
    largest_win: float
    largest_loss: float
    payoff_ratio: float

    # Other metrics
    periods: int
    initial_equity: float
    final_equity: float

    information_ratio: Optional[float] = None
    beta: Optional[float] = None
    alpha: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PerformanceAnalyzer:
    """
    Performance analysis engine.

    Calculates return, risk and trading metrics from the snapshot
    sequence and trade list of a run.
    """

    def __init__(self, risk_free_rate: float = 0.0, confidence: float = 0.95, seed: Optional[int] = 42):
        """
        Initialize performance analyzer.

        Args:
            risk_free_rate: Annual risk-free rate for Sharpe and Sortino
            confidence: Confidence level for VaR and CVaR
            seed: Seed for Monte Carlo VaR
        """
        if not 0 < confidence < 1:
            raise ValueError(f"Confidence must be between 0 and 1, got {confidence}")
        self.risk_free_rate = risk_free_rate
        self.confidence = confidence
        self.seed = seed

    def calculate_metrics(
        self,
        equity: ArrayLike,
        trades: Sequence[Trade],
        benchmark_returns: Optional[ArrayLike] = None
    ) -> PerformanceMetrics:
        """
        Calculate performance metrics.

        Args:
            equity: Equity values in time order
            trades: Trades from the journal (open trades are ignored)
            benchmark_returns: Benchmark returns aligned with the equity returns

        Returns:
            PerformanceMetrics object
        """
        equity_arr = to_array(equity)
        returns = calculate_returns(equity_arr)
        drawdown: DrawdownInfo = max_drawdown(equity_arr)

        info_ratio, bench_beta, bench_alpha = None, None, None
        if benchmark_returns is not None:
            info_ratio = information_ratio(returns, benchmark_returns)
            bench_beta = beta(returns, benchmark_returns)
            bench_alpha = alpha(returns, benchmark_returns, self.risk_free_rate)

        trade_metrics = calculate_trade_metrics(trades)

        return PerformanceMetrics(
            total_return=total_return(equity_arr),
            annualized_return=annualized_return(equity_arr),
            volatility=volatility(returns),
            sharpe_ratio=sharpe_ratio(returns, self.risk_free_rate),
            sortino_ratio=sortino_ratio(returns, self.risk_free_rate),
            calmar_ratio=calmar_ratio(equity_arr),
            max_drawdown=drawdown.value,
            max_drawdown_peak=drawdown.peak_index,
            max_drawdown_trough=drawdown.trough_index,
            max_drawdown_duration=drawdown.duration,
            ulcer_index=ulcer_index(equity_arr),
            var=value_at_risk(returns, self.confidence, 'historical'),
            var_parametric=value_at_risk(returns, self.confidence, 'parametric'),
            var_monte_carlo=value_at_risk(returns, self.confidence, 'monte_carlo', seed=self.seed),
            cvar=conditional_value_at_risk(returns, self.confidence),
            confidence=self.confidence,
            periods=len(equity_arr),
            initial_equity=float(equity_arr[0]) if len(equity_arr) else 0.0,
            final_equity=float(equity_arr[-1]) if len(equity_arr) else 0.0,
            information_ratio=info_ratio,
            beta=bench_beta,
            alpha=bench_alpha,
            **trade_metrics
        )


class BacktestResult:
    """
    Terminal artifact of a simulation run.

    Holds the snapshot sequence, the trade list and the computed metrics,
    plus the fill and rejection audit trail. Owned by the caller.
    """

    def __init__(
        self,
        equity: List[PortfolioSnapshot],
        trades: List[Trade],
        metrics: PerformanceMetrics,
        initial_cash: Decimal,
        fills: Optional[List] = None,
        rejections: Optional[List] = None,
        stress: Optional[Dict[str, StressResult]] = None
    ):
        self.equity = equity
        self.trades = trades
        self.metrics = metrics
        self.initial_cash = initial_cash
        self.fills = fills or []
        self.rejections = rejections or []
        self.stress = stress or {}

    @property
    def final_cash(self) -> Decimal:
        return self.equity[-1].cash if self.equity else self.initial_cash

    @property
    def final_equity(self) -> Decimal:
        return self.equity[-1].equity if self.equity else self.initial_cash

    def equity_values(self) -> List[Decimal]:
        return [snapshot.equity for snapshot in self.equity]

    def get_equity_curve(self) -> pd.DataFrame:
        """Get equity curve as DataFrame indexed by timestamp."""
        df = pd.DataFrame(
            {
                'timestamp': [s.timestamp for s in self.equity],
                'cash': [float(s.cash) for s in self.equity],
                'equity': [float(s.equity) for s in self.equity],
            }
        )
        df.set_index('timestamp', inplace=True)
        df['drawdown'] = -drawdown_series(df['equity'].to_numpy())
        return df

    def get_trades_df(self) -> pd.DataFrame:
        """Get trades as DataFrame."""
        if not self.trades:
            return pd.DataFrame()

        trades_data = []
        for trade in self.trades:
            trades_data.append({
                'symbol': trade.symbol,
                'side': trade.side.value,
                'entry_time': trade.entry_time,
                'entry_price': float(trade.entry_price),
                'quantity': trade.quantity,
                'exit_time': trade.exit_time,
                'exit_price': None if trade.exit_price is None else float(trade.exit_price),
                'pnl': None if trade.pnl is None else float(trade.pnl),
                'commission': float(trade.commission),
                'slippage': float(trade.slippage),
            })

        return pd.DataFrame(trades_data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'initial_cash': str(self.initial_cash),
            'equity': [snapshot.to_dict() for snapshot in self.equity],
            'trades': [trade.to_dict() for trade in self.trades],
            'metrics': self.metrics.to_dict(),
            'fills': [_fill_to_dict(fill) for fill in self.fills],
            'rejections': [rejection.to_dict() for rejection in self.rejections],
            'stress': {name: result.to_dict() for name, result in self.stress.items()},
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to JSON. Infinite ratios are written as ``Infinity``."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    def print_summary(self) -> None:
        """Print a summary of the backtest results."""
        m = self.metrics
        print("=" * 80)
        print("BACKTEST RESULTS SUMMARY")
        print("=" * 80)
        if self.equity:
            print(f"Period: {self.equity[0].timestamp} to {self.equity[-1].timestamp} ({m.periods} bars)")
        print(f"Initial Cash: ${self.initial_cash:,.2f}")
        print(f"Final Equity: ${self.final_equity:,.2f}")
        print()

        print("PERFORMANCE METRICS")
        print("-" * 40)
        print(f"Total Return: {m.total_return:.2%}")
        print(f"Annualized Return: {m.annualized_return:.2%}")
        print(f"Volatility: {m.volatility:.2%}")
        print(f"Sharpe Ratio: {m.sharpe_ratio:.2f}")
        print(f"Sortino Ratio: {m.sortino_ratio:.2f}")
        print(f"Calmar Ratio: {m.calmar_ratio:.2f}")
        print()

        print("RISK METRICS")
        print("-" * 40)
        print(f"Maximum Drawdown: {m.max_drawdown:.2%}")
        print(f"Max DD Duration: {m.max_drawdown_duration} bars")
        print(f"VaR ({m.confidence:.0%}, historical): {m.var:.2%}")
        print(f"VaR ({m.confidence:.0%}, parametric): {m.var_parametric:.2%}")
        print(f"VaR ({m.confidence:.0%}, Monte Carlo): {m.var_monte_carlo:.2%}")
        print(f"CVaR ({m.confidence:.0%}): {m.cvar:.2%}")
        print()

        print("TRADING METRICS")
        print("-" * 40)
        print(f"Closed Trades: {m.total_trades} (open: {m.open_trades})")
        print(f"Win Rate: {m.win_rate:.2%}")
        print(f"Profit Factor: {m.profit_factor:.2f}")
        print(f"Expectancy: ${m.expectancy:.2f}")
        print(f"Rejected Orders: {len(self.rejections)}")
        print("=" * 80)


def _fill_to_dict(fill) -> Dict[str, Any]:
    return {
        'symbol': fill.symbol,
        'side': fill.side.value,
        'quantity': fill.quantity,
        'fill_price': str(fill.fill_price),
        'commission': str(fill.commission),
        'slippage': str(fill.slippage),
        'timestamp': fill.timestamp.isoformat(),
    }


def analyze(
    equity: List[PortfolioSnapshot],
    trades: List[Trade],
    initial_cash: Decimal,
    analyzer: Optional[PerformanceAnalyzer] = None,
    fills: Optional[List] = None,
    rejections: Optional[List] = None
) -> BacktestResult:
    """Compute metrics and stress results and assemble a BacktestResult."""
    analyzer = analyzer or PerformanceAnalyzer()
    equity_values = [snapshot.equity for snapshot in equity]

    metrics = analyzer.calculate_metrics(equity_values, trades)
    stress = stress_test(calculate_returns(equity_values), float(equity_values[-1]) if equity_values else 0.0)

    logger.info(f"Performance: total return {metrics.total_return:.2%}, "
                f"max drawdown {metrics.max_drawdown:.2%}, {metrics.total_trades} closed trades")

    return BacktestResult(
        equity=equity,
        trades=trades,
        metrics=metrics,
        initial_cash=initial_cash,
        fills=fills,
        rejections=rejections,
        stress=stress
    )
