"""
Bar loading and validation for the simulation engine.

This module turns CSV files and DataFrames into ordered ``Bar`` sequences
and checks the engine's input contract: a non-empty sequence of bars with
finite positive prices, non-decreasing timestamps and no duplicate
``(symbol, timestamp)`` pairs.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple, Union
import logging

import pandas as pd

from .models import Bar


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['open', 'high', 'low', 'close']


class DataValidator:
    """Data validation utilities."""

    @staticmethod
    def validate_ohlcv(df: pd.DataFrame) -> List[str]:
        """
        Validate OHLCV data for consistency.

        Args:
            df: DataFrame with OHLCV data indexed by timestamp

        Returns:
            List of validation errors
        """
        errors = []

        missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing_columns:
            errors.append(f"Missing required columns: {missing_columns}")
            return errors

        for col in REQUIRED_COLUMNS:
            if (df[col] <= 0).any():
                errors.append(f"Found non-positive prices in {col}")

        if 'volume' in df.columns and (df['volume'] < 0).any():
            errors.append("Found negative volume")

        invalid_high = df['high'] < df[['open', 'low', 'close']].max(axis=1)
        if invalid_high.any():
            errors.append("High price is less than max(open, low, close)")

        invalid_low = df['low'] > df[['open', 'high', 'close']].min(axis=1)
        if invalid_low.any():
            errors.append("Low price is greater than min(open, high, close)")

        if df[REQUIRED_COLUMNS].isnull().any().any():
            errors.append("Found missing values in data")

        if df.index.duplicated().any():
            errors.append("Found duplicate timestamps")

        return errors

    @staticmethod
    def clean_data(df: pd.DataFrame, method: str = 'forward_fill') -> pd.DataFrame:
        """
        Clean and handle missing data.

        Args:
            df: Input DataFrame
            method: 'forward_fill', 'drop' or 'interpolate'

        Returns:
            Cleaned DataFrame sorted by timestamp
        """
        df_clean = df.sort_index()

        if method == 'forward_fill':
            df_clean = df_clean.ffill()
        elif method == 'interpolate':
            df_clean = df_clean.interpolate(method='linear')
        elif method != 'drop':
            raise ValueError(f"Unknown cleaning method: {method}")

        # Remove any remaining NaN values
        return df_clean.dropna(subset=REQUIRED_COLUMNS)


def validate_bars(bars: Sequence[Bar], default_symbol: str = "UNKNOWN") -> None:
    """
    Check a bar sequence against the engine's input contract.

    Raises:
        ValueError: If the sequence is empty, a price is non-finite or
            non-positive, timestamps decrease, or a ``(symbol, timestamp)``
            pair repeats
    """
    if not bars:
        raise ValueError("Bar sequence is empty")

    seen: Set[Tuple[str, datetime]] = set()
    previous: Optional[datetime] = None

    for i, bar in enumerate(bars):
        if not bar.is_finite:
            raise ValueError(f"Bar {i} at {bar.timestamp} has a non-finite price")
        if min(bar.open, bar.high, bar.low, bar.close) <= 0:
            raise ValueError(f"Bar {i} at {bar.timestamp} has a non-positive price")
        if previous is not None and bar.timestamp < previous:
            raise ValueError(
                f"Bar {i} timestamp {bar.timestamp} is earlier than previous {previous}"
            )

        key = (bar.symbol or default_symbol, bar.timestamp)
        if key in seen:
            raise ValueError(f"Duplicate bar for {key[0]} at {bar.timestamp}")
        seen.add(key)
        previous = bar.timestamp


def bars_from_dataframe(df: pd.DataFrame, symbol: Optional[str] = None) -> List[Bar]:
    """
    Convert an OHLCV DataFrame indexed by timestamp into bars.

    A ``symbol`` column, when present, takes precedence over ``symbol``.
    """
    missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {missing_columns}")

    has_volume = 'volume' in df.columns
    has_symbol = 'symbol' in df.columns

    bars = []
    for timestamp, row in df.iterrows():
        bars.append(Bar(
            timestamp=pd.Timestamp(timestamp).to_pydatetime(),
            open=row['open'],
            high=row['high'],
            low=row['low'],
            close=row['close'],
            volume=int(row['volume']) if has_volume else 0,
            symbol=row['symbol'] if has_symbol else symbol
        ))
    return bars


def load_bars_from_csv(
    path: Union[str, Path],
    symbol: Optional[str] = None,
    clean: Optional[str] = None
) -> List[Bar]:
    """
    Load bars from a CSV file.

    The first column is parsed as the timestamp index; column names are
    matched case-insensitively. Rows are sorted by timestamp.

    Args:
        path: CSV file path
        symbol: Symbol for the bars (defaults to the file stem when the file
            has no ``symbol`` column)
        clean: Optional missing-data handling passed to
            ``DataValidator.clean_data``

    Returns:
        List of bars in timestamp order
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Data path not found: {path}")

    df = pd.read_csv(path, index_col=0, parse_dates=True)
    df.columns = [col.lower().replace(' ', '_') for col in df.columns]

    errors = DataValidator.validate_ohlcv(df)
    if errors:
        logger.warning(f"Data validation errors for {path.name}: {errors}")

    if clean is not None:
        df = DataValidator.clean_data(df, clean)
    else:
        df = df.sort_index(kind='stable')

    if symbol is None and 'symbol' not in df.columns:
        symbol = path.stem

    bars = bars_from_dataframe(df, symbol)
    logger.info(f"Loaded {len(bars)} bars from {path}")
    return bars


def filter_bars(
    bars: Sequence[Bar],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[Bar]:
    """Keep bars with ``start <= timestamp <= end``; either bound may be None."""
    filtered = [
        bar for bar in bars
        if (start is None or bar.timestamp >= start) and (end is None or bar.timestamp <= end)
    ]
    logger.debug(f"Filtered {len(bars)} bars to {len(filtered)}")
    return filtered
