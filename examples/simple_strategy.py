"""
Simple simulation example.

This script demonstrates how to use the simulation engine with a moving
average crossover strategy and realistic trading costs, and compares it with
a buy-and-hold run over the same bars.
"""

import logging
from decimal import Decimal
from pathlib import Path

import numpy as np
import pandas as pd

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from portsim import BacktestEngine
from portsim.core.data_handler import load_bars_from_csv
from portsim.execution.commissions import PercentageCommissionModel
from portsim.execution.slippage import FixedBpsSlippageModel
from portsim.strategies import BuyAndHoldStrategy, MovingAverageCrossStrategy
from portsim.visualization import save_report


def create_sample_data(path: Path) -> None:
    """Create sample market data for testing."""
    dates = pd.date_range('2020-01-01', '2023-12-31', freq='B')
    rng = np.random.default_rng(42)

    returns = rng.normal(0.0004, 0.015, len(dates))
    close = 100 * np.exp(np.cumsum(returns))

    df = pd.DataFrame(index=dates)
    df.index.name = 'timestamp'
    df['close'] = close
    df['open'] = np.concatenate([[close[0]], close[:-1]])
    df['high'] = np.maximum(df['open'], df['close']) * (1 + np.abs(rng.normal(0, 0.005, len(dates))))
    df['low'] = np.minimum(df['open'], df['close']) * (1 - np.abs(rng.normal(0, 0.005, len(dates))))
    df['volume'] = rng.lognormal(15, 0.5, len(dates)).astype(int)

    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path)
    print(f"Created sample data: {path}")


def run_simple_backtest():
    """Run a simple simulation example."""
    data_path = Path('data') / 'SAMPLE.csv'
    if not data_path.exists():
        print("Creating sample data...")
        create_sample_data(data_path)

    bars = load_bars_from_csv(data_path, symbol='SAMPLE')
    initial_cash = Decimal('100000')

    engine = BacktestEngine(
        strategy=MovingAverageCrossStrategy(fast=10, slow=50),
        initial_cash=initial_cash,
        commission_model=PercentageCommissionModel(
            commission_rate=Decimal('0.001'),
            min_commission=Decimal('1.0')
        ),
        slippage_model=FixedBpsSlippageModel(bps=Decimal('5')),
        position_fraction=Decimal('0.5')
    )
    results = engine.run(bars)
    results.print_summary()

    benchmark = BacktestEngine(
        strategy=BuyAndHoldStrategy(),
        initial_cash=initial_cash,
        position_fraction=Decimal('1')
    ).run(bars)

    print("\nCOMPARISON")
    print("-" * 40)
    print(f"Crossover total return:    {results.metrics.total_return:.2%}")
    print(f"Buy-and-hold total return: {benchmark.metrics.total_return:.2%}")

    report_path = save_report(results, Path('results') / 'simple_strategy.html')
    print(f"\nReport saved to: {report_path}")

    return results


if __name__ == "__main__":
    run_simple_backtest()
