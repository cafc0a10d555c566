"""
Command Line Interface for portsim.

This module provides a command-line interface for running simulations from
a YAML configuration file and writing their results.
"""

import click
import logging
import yaml
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from .core.data_handler import filter_bars, load_bars_from_csv
from .core.engine import BacktestEngine
from .core.models import Bar
from .execution.commissions import create_commission_model
from .execution.slippage import create_slippage_model
from .strategies import create_strategy


# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


TEMPLATE_CONFIG = {
    'engine': {
        'initial_cash': 100000,
        'position_fraction': 0.1,
        'risk_free_rate': 0.0,
        'confidence': 0.95,
        'seed': 42,
        'start_date': '2020-01-01',
        'end_date': '2023-12-31',
    },
    'data': {
        'path': 'data/AAPL.csv',
        'symbol': 'AAPL',
    },
    'strategy': {
        'name': 'ma_cross',
        'parameters': {
            'fast': 10,
            'slow': 30,
        },
    },
    'execution': {
        'commission': {
            'model': 'fixed',
            'parameters': {'commission_per_trade': 1.0},
        },
        'slippage': {
            'model': 'fixed_bps',
            'parameters': {'bps': 5},
        },
    },
}


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {config_path} does not contain a mapping")
    return config


def _decimal_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: Decimal(str(v)) if isinstance(v, (int, float)) else v
            for k, v in (params or {}).items()}


def _parse_date(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def create_engine_from_config(config: Dict[str, Any]) -> BacktestEngine:
    """Create the simulation engine, its strategy and cost models from configuration."""
    engine_config = config.get('engine', {})
    execution_config = config.get('execution', {})

    commission_config = execution_config.get('commission', {})
    commission_model = create_commission_model(
        commission_config.get('model', 'none'),
        **_decimal_params(commission_config.get('parameters'))
    )

    slippage_config = execution_config.get('slippage', {})
    slippage_model = create_slippage_model(
        slippage_config.get('model', 'none'),
        **_decimal_params(slippage_config.get('parameters'))
    )

    strategy_config = config['strategy']
    strategy = create_strategy(strategy_config['name'], **(strategy_config.get('parameters') or {}))

    return BacktestEngine(
        strategy=strategy,
        initial_cash=Decimal(str(engine_config.get('initial_cash', 100000))),
        commission_model=commission_model,
        slippage_model=slippage_model,
        position_fraction=Decimal(str(engine_config.get('position_fraction', '0.1'))),
        risk_free_rate=float(engine_config.get('risk_free_rate', 0.0)),
        confidence=float(engine_config.get('confidence', 0.95)),
        seed=engine_config.get('seed', 42),
        default_symbol=config.get('data', {}).get('symbol') or "UNKNOWN"
    )


def load_bars_from_config(config: Dict[str, Any]) -> List[Bar]:
    """Load and date-filter the bars named in the ``data`` section."""
    data_config = config['data']
    engine_config = config.get('engine', {})

    bars = load_bars_from_csv(
        data_config['path'],
        symbol=data_config.get('symbol'),
        clean=data_config.get('handle_missing')
    )
    return filter_bars(
        bars,
        start=_parse_date(engine_config.get('start_date')),
        end=_parse_date(engine_config.get('end_date'))
    )


@click.group()
def cli():
    """Portfolio simulation engine CLI."""
    pass


@cli.command()
@click.option('--config', '-c', required=True, help='Path to configuration file')
@click.option('--output', '-o', default='results', help='Output directory for results')
@click.option('--report/--no-report', default=False, help='Write an HTML equity and drawdown report')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def run(config: str, output: str, report: bool, verbose: bool):
    """Run a simulation with the specified configuration."""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        click.echo(f"Loading configuration from {config}")
        config_data = load_config(config)

        click.echo("Loading bars...")
        bars = load_bars_from_config(config_data)

        click.echo("Creating simulation engine...")
        engine = create_engine_from_config(config_data)

        click.echo(f"Running simulation over {len(bars)} bars...")
        results = engine.run(bars)

        output_dir = Path(output)
        output_dir.mkdir(parents=True, exist_ok=True)

        results_path = output_dir / 'results.json'
        results_path.write_text(results.to_json(indent=2))

        click.echo("\n" + "=" * 80)
        click.echo("SIMULATION COMPLETED")
        click.echo("=" * 80)
        results.print_summary()

        click.echo(f"\nResults saved to: {results_path}")

        if report:
            from .visualization.charts import save_report
            report_path = save_report(results, output_dir / 'report.html')
            click.echo(f"Report saved to: {report_path}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if verbose:
            import traceback
            traceback.print_exc()
        raise click.Abort()


@cli.command()
@click.option('--output', '-o', default='config.yaml', help='Output configuration file')
def init_config(output: str):
    """Initialize a configuration file template."""
    with open(output, 'w') as f:
        yaml.dump(TEMPLATE_CONFIG, f, default_flow_style=False, indent=2, sort_keys=False)

    click.echo(f"Configuration template saved to: {output}")
    click.echo("Edit the configuration file before running your simulation.")


@cli.command()
def version():
    """Show version information."""
    from . import __version__
    click.echo(f"portsim v{__version__}")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
