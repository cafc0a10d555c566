"""Shared fixtures for the portsim test suite."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional

import pytest

from portsim.core.models import Bar, Signal
from portsim.strategies.base import BaseStrategy


START = datetime(2024, 1, 1)


def build_bars(closes, symbol: Optional[str] = "TEST", start: datetime = START):
    """One daily bar per close, with open/high/low equal to the close."""
    bars = []
    for i, close in enumerate(closes):
        price = Decimal(str(close))
        bars.append(Bar(
            timestamp=start + timedelta(days=i),
            open=price,
            high=price,
            low=price,
            close=price,
            volume=1000,
            symbol=symbol
        ))
    return bars


class ScriptedStrategy(BaseStrategy):
    """Emits a fixed signal value at chosen bar indices."""

    def __init__(self, script: Dict[int, float], default: Optional[float] = None):
        super().__init__("scripted")
        self.script = script
        self.default = default
        self.init_calls = 0

    def init(self, bars):
        self.init_calls += 1

    def generate_signal(self, bar):
        value = self.script.get(len(self.history) - 1, self.default)
        if value is None:
            return None
        return Signal(timestamp=bar.timestamp, value=value)


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def linear_bars():
    """100 bars with closes 100, 100.5, 101, ..."""
    return build_bars([100 + 0.5 * i for i in range(100)])


@pytest.fixture
def scripted():
    return ScriptedStrategy
