"""Tests for the command-line interface."""

import json
from decimal import Decimal

import pandas as pd
import pytest
import yaml
from click.testing import CliRunner

from portsim.cli import cli, create_engine_from_config, load_config
from portsim.execution.commissions import FixedCommissionModel
from portsim.execution.slippage import FixedBpsSlippageModel
from portsim.strategies import AlternatingStrategy


@pytest.fixture
def data_file(tmp_path):
    dates = pd.date_range('2024-01-01', periods=60, freq='D')
    closes = [100 + 0.5 * i for i in range(60)]
    df = pd.DataFrame({
        'open': closes,
        'high': [c + 1 for c in closes],
        'low': [c - 1 for c in closes],
        'close': closes,
        'volume': [1000] * 60,
    }, index=dates)
    path = tmp_path / "TEST.csv"
    df.to_csv(path)
    return path


@pytest.fixture
def config_file(tmp_path, data_file):
    config = {
        'engine': {
            'initial_cash': 100000,
            'position_fraction': 0.2,
            'seed': 7,
            'start_date': '2024-01-01',
            'end_date': '2024-02-15',
        },
        'data': {'path': str(data_file), 'symbol': 'TEST'},
        'strategy': {'name': 'alternating', 'parameters': {'period': 5}},
        'execution': {
            'commission': {'model': 'fixed', 'parameters': {'commission_per_trade': 1.5}},
            'slippage': {'model': 'fixed_bps', 'parameters': {'bps': 5}},
        },
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


class TestConfig:
    """Test configuration handling."""

    def test_create_engine_from_config(self, config_file):
        """Every section reaches the engine."""
        engine = create_engine_from_config(load_config(str(config_file)))

        assert engine.initial_cash == Decimal('100000')
        assert engine.position_fraction == Decimal('0.2')
        assert isinstance(engine.strategy, AlternatingStrategy)
        assert isinstance(engine.commission_model, FixedCommissionModel)
        assert engine.commission_model.commission_per_trade == Decimal('1.5')
        assert isinstance(engine.slippage_model, FixedBpsSlippageModel)
        assert engine.default_symbol == 'TEST'

    def test_non_mapping_config(self, tmp_path):
        """A YAML file must hold a mapping."""
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestCommands:
    """Test CLI commands."""

    def test_run_writes_results(self, config_file, tmp_path):
        """The run command writes results.json for the filtered bars."""
        output = tmp_path / "out"
        result = CliRunner().invoke(cli, ['run', '-c', str(config_file), '-o', str(output)])

        assert result.exit_code == 0, result.output
        assert "SIMULATION COMPLETED" in result.output

        data = json.loads((output / 'results.json').read_text())
        assert len(data['equity']) == 46
        assert data['fills']

    def test_run_with_report(self, config_file, tmp_path):
        """The report option writes an HTML file."""
        output = tmp_path / "out"
        result = CliRunner().invoke(cli, ['run', '-c', str(config_file), '-o', str(output), '--report'])

        assert result.exit_code == 0, result.output
        assert (output / 'report.html').exists()

    def test_run_missing_config(self, tmp_path):
        """Errors abort with a non-zero exit code."""
        result = CliRunner().invoke(cli, ['run', '-c', str(tmp_path / 'missing.yaml')])

        assert result.exit_code != 0
        assert "Error" in result.output

    def test_init_config(self, tmp_path):
        """The template is valid YAML with every section."""
        path = tmp_path / "template.yaml"
        result = CliRunner().invoke(cli, ['init-config', '-o', str(path)])

        assert result.exit_code == 0
        config = yaml.safe_load(path.read_text())
        assert set(config) == {'engine', 'data', 'strategy', 'execution'}

    def test_version(self):
        """Version is printed."""
        result = CliRunner().invoke(cli, ['version'])

        assert result.exit_code == 0
        assert "portsim v1.0.0" in result.output
