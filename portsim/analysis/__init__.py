"""Analysis module initialization."""

from .performance import BacktestResult, PerformanceAnalyzer, PerformanceMetrics

__all__ = [
    "BacktestResult",
    "PerformanceAnalyzer",
    "PerformanceMetrics",
]
