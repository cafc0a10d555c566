"""
Risk metrics calculation.

This module provides stateless risk measures over equity curves and return
series: VaR and CVaR (historical, parametric and Monte Carlo), drawdown
analysis, volatility and benchmark-relative measures.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
from scipy import stats


logger = logging.getLogger(__name__)

TRADING_DAYS = 252
MONTE_CARLO_SIMULATIONS = 10_000
VAR_METHODS = ('historical', 'parametric', 'monte_carlo')

# Standard deviations below this are treated as zero.
STD_EPSILON = 1e-12

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class DrawdownInfo:
    """Maximum drawdown and where it happened."""
    value: float
    peak_index: int
    trough_index: int
    duration: int

    def to_dict(self) -> dict:
        return {
            'value': self.value,
            'peak_index': self.peak_index,
            'trough_index': self.trough_index,
            'duration': self.duration,
        }


def to_array(values: ArrayLike) -> np.ndarray:
    return np.asarray([float(v) for v in values], dtype=np.float64)


def _check_confidence(confidence: float) -> None:
    if not 0 < confidence < 1:
        raise ValueError(f"Confidence must be between 0 and 1, got {confidence}")


def _check_same_length(returns: np.ndarray, benchmark: np.ndarray) -> None:
    if len(returns) != len(benchmark):
        raise ValueError(
            f"Returns and benchmark must have same length ({len(returns)} != {len(benchmark)})"
        )


def sample_std(values: ArrayLike) -> float:
    """Sample standard deviation (ddof=1), 0.0 for fewer than two points."""
    arr = to_array(values)
    if len(arr) < 2:
        return 0.0
    return float(np.std(arr, ddof=1))


def calculate_returns(equity: ArrayLike) -> np.ndarray:
    """
    Calculate simple period returns from an equity curve.

    Parameters
    ----------
    equity : array-like
        Equity values in time order

    Returns
    -------
    np.ndarray
        ``r_t = (e_t - e_{t-1}) / e_{t-1}``, one shorter than ``equity``.
        A zero previous equity yields a zero return.
    """
    arr = to_array(equity)
    if len(arr) < 2:
        return np.zeros(0, dtype=np.float64)

    previous = arr[:-1]
    with np.errstate(divide='ignore', invalid='ignore'):
        returns = np.where(previous != 0, np.diff(arr) / previous, 0.0)
    return returns


def volatility(returns: ArrayLike, annualized: bool = True) -> float:
    """Sample standard deviation of returns, optionally scaled by sqrt(252)."""
    vol = sample_std(returns)
    return vol * np.sqrt(TRADING_DAYS) if annualized else vol


def downside_deviation(returns: ArrayLike, target: float = 0.0, annualized: bool = True) -> float:
    """
    Root mean square shortfall of returns below ``target``.

    Only sub-target observations enter the average. Returns 0.0 when there
    are none.
    """
    arr = to_array(returns)
    shortfall = arr[arr < target] - target
    if len(shortfall) == 0:
        return 0.0

    dd = float(np.sqrt(np.mean(shortfall ** 2)))
    return dd * np.sqrt(TRADING_DAYS) if annualized else dd


def max_drawdown(equity: ArrayLike) -> DrawdownInfo:
    """
    Calculate maximum drawdown in a single left-to-right pass.

    Parameters
    ----------
    equity : array-like
        Equity values in time order

    Returns
    -------
    DrawdownInfo
        Drawdown as a fraction of the running peak (between 0 and 1), the
        indices of the peak and trough that achieve it, and the number of
        bars between them. All zeros for an empty or never-declining curve.
    """
    arr = to_array(equity)
    if len(arr) == 0:
        return DrawdownInfo(0.0, 0, 0, 0)

    max_dd = 0.0
    peak = arr[0]
    peak_idx = 0
    dd_peak_idx = 0
    dd_trough_idx = 0

    for i, value in enumerate(arr):
        if value > peak:
            peak = value
            peak_idx = i

        dd = (peak - value) / peak if peak > 0 else 0.0
        if dd > max_dd:
            max_dd = float(dd)
            dd_peak_idx = peak_idx
            dd_trough_idx = i

    return DrawdownInfo(
        value=min(max_dd, 1.0),
        peak_index=dd_peak_idx,
        trough_index=dd_trough_idx,
        duration=dd_trough_idx - dd_peak_idx
    )


def drawdown_series(equity: ArrayLike) -> np.ndarray:
    """Drawdown from the running peak at every point, as a positive fraction."""
    arr = to_array(equity)
    if len(arr) == 0:
        return arr
    running_max = np.maximum.accumulate(arr)
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(running_max > 0, (running_max - arr) / running_max, 0.0)


def ulcer_index(equity: ArrayLike) -> float:
    """Root mean square of percentage drawdowns."""
    dd = drawdown_series(equity) * 100
    if len(dd) == 0:
        return 0.0
    return float(np.sqrt(np.mean(dd ** 2)))


def box_muller_normals(size: int, rng: np.random.Generator) -> np.ndarray:
    """Draw standard normal variates with the Box-Muller transform."""
    u1 = 1.0 - rng.random(size)  # (0, 1], keeps log finite
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def value_at_risk(
    returns: ArrayLike,
    confidence: float = 0.95,
    method: str = 'historical',
    simulations: int = MONTE_CARLO_SIMULATIONS,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> float:
    """
    Calculate Value at Risk as a return quantile.

    Parameters
    ----------
    returns : array-like
        Period returns
    confidence : float
        Confidence level, e.g. 0.95
    method : str
        'historical' (empirical quantile with linear interpolation),
        'parametric' (mean + z * std under normality) or
        'monte_carlo' (historical method over normal draws)
    simulations : int
        Number of Monte Carlo draws
    seed : int, optional
        Seed for the Monte Carlo generator
    rng : np.random.Generator, optional
        Generator to draw from, takes precedence over ``seed``

    Returns
    -------
    float
        The ``(1 - confidence)`` return quantile (negative means a loss).
        0.0 for an empty series.
    """
    _check_confidence(confidence)
    if method not in VAR_METHODS:
        raise ValueError(f"Unknown VaR method: {method}. Available methods: {list(VAR_METHODS)}")

    arr = to_array(returns)
    if len(arr) == 0:
        return 0.0

    alpha = 1 - confidence

    if method == 'historical':
        return float(np.quantile(arr, alpha))

    mean = float(np.mean(arr))
    std = sample_std(arr)

    if method == 'parametric':
        return mean + float(stats.norm.ppf(alpha)) * std

    generator = rng if rng is not None else np.random.default_rng(seed)
    simulated = mean + box_muller_normals(simulations, generator) * std
    return float(np.quantile(simulated, alpha))


def conditional_value_at_risk(returns: ArrayLike, confidence: float = 0.95) -> float:
    """
    Calculate Conditional Value at Risk (Expected Shortfall).

    Mean of the returns at or below the historical VaR. Never above the VaR
    itself. When at most one observation falls in the tail the result is the
    VaR, even though an interpolated VaR lies above that single observation.
    """
    arr = to_array(returns)
    var = value_at_risk(arr, confidence, 'historical')
    if len(arr) == 0:
        return var

    tail_returns = arr[arr <= var]
    if len(tail_returns) <= 1:
        return var
    return min(float(np.mean(tail_returns)), var)


def beta(returns: ArrayLike, benchmark_returns: ArrayLike) -> float:
    """Beta versus a benchmark, 0.0 when the benchmark has no variance."""
    arr = to_array(returns)
    bench = to_array(benchmark_returns)
    _check_same_length(arr, bench)
    if len(arr) < 2:
        return 0.0

    benchmark_variance = float(np.var(bench, ddof=1))
    if benchmark_variance < STD_EPSILON ** 2:
        return 0.0
    covariance = float(np.cov(arr, bench, ddof=1)[0, 1])
    return covariance / benchmark_variance


def tracking_error(returns: ArrayLike, benchmark_returns: ArrayLike, annualized: bool = True) -> float:
    """Standard deviation of active returns."""
    arr = to_array(returns)
    bench = to_array(benchmark_returns)
    _check_same_length(arr, bench)
    return volatility(arr - bench, annualized=annualized)
