"""
Candle loading from CSV / OHLCV DataFrames and conversion of results back to DataFrames.

Accepted time columns: time, timestamp, open_time, openTime. Numeric times are epoch
milliseconds (exchange kline convention); strings are parsed as dates. All times become UTC.
"""

from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from breakout_bot.core.exceptions import DataError
from breakout_bot.core.types import Candle, EquityPoint, Trade, to_utc

logger = logging.getLogger("breakout_bot.data")

TIME_COLUMNS = ("time", "timestamp", "open_time", "openTime")
PRICE_COLUMNS = ("open", "high", "low", "close", "volume")


def _time_column(df: pd.DataFrame) -> str:
    for col in TIME_COLUMNS:
        if col in df.columns:
            return col
    raise DataError(f"no time column, expected one of {TIME_COLUMNS}")


def candles_from_dataframe(df: pd.DataFrame) -> List[Candle]:
    """
    Convert an OHLCV DataFrame to candles in row order. Row order is kept as-is so
    the engine, not the loader, decides what to do with out-of-order bars.
    """
    missing = [c for c in PRICE_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"missing columns: {missing}")
    time_col = _time_column(df)
    times = df[time_col]
    try:
        if pd.api.types.is_numeric_dtype(times):
            times = pd.to_datetime(times, unit="ms", utc=True)
        else:
            times = pd.to_datetime(times, utc=True)
    except (TypeError, ValueError) as e:
        raise DataError(f"unparseable {time_col} values: {e}") from e
    try:
        prices = df[list(PRICE_COLUMNS)].astype(float)
    except (TypeError, ValueError) as e:
        raise DataError(f"non-numeric OHLCV values: {e}") from e
    candles = []
    for ts, (o, h, l, c, v) in zip(times, prices.itertuples(index=False, name=None)):
        if pd.isna(ts):
            logger.warning("Skipping row with missing %s", time_col)
            continue
        candles.append(Candle(ts.to_pydatetime(), o, h, l, c, v))
    return candles


def load_candles_csv(path: Path) -> List[Candle]:
    """Load candles from a CSV file with a time column and open/high/low/close/volume."""
    path = Path(path)
    if not path.exists():
        raise DataError(f"candle file not found: {path}")
    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataError(f"unreadable candle file {path}: {e}") from e
    candles = candles_from_dataframe(df)
    logger.info("Loaded %d candles from %s", len(candles), path)
    return candles


def slice_candles(
    candles: Sequence[Candle],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    warmup: int = 0,
) -> List[Candle]:
    """
    Candles with start <= timestamp <= end, preceded by up to `warmup` earlier candles
    so a signal window is already full on the first in-range bar.
    """
    start = to_utc(start) if start is not None else None
    end = to_utc(end) if end is not None else None
    first = 0
    if start is not None:
        first = next((i for i, c in enumerate(candles) if c.timestamp >= start), len(candles))
    lo = max(0, first - warmup)
    return [c for c in candles[lo:] if end is None or c.timestamp <= end]


def candles_to_dataframe(candles: Sequence[Candle]) -> pd.DataFrame:
    return pd.DataFrame(
        [(c.timestamp, c.open, c.high, c.low, c.close, c.volume) for c in candles],
        columns=["time", *PRICE_COLUMNS],
    )


def equity_to_dataframe(equity_curve: Sequence[EquityPoint]) -> pd.DataFrame:
    """Equity samples with running peak and drawdown (%) columns."""
    df = pd.DataFrame(
        [(p.timestamp, p.balance) for p in equity_curve],
        columns=["time", "balance"],
    )
    df["peak"] = df["balance"].cummax()
    df["drawdown_pct"] = (df["peak"] - df["balance"]) / df["peak"] * 100.0
    return df


def trades_to_dataframe(trades: Sequence[Trade]) -> pd.DataFrame:
    rows = []
    for t in trades:
        row = t.to_dict()
        row["side"] = t.side.name
        row["entry_timestamp"] = t.entry_timestamp
        row["exit_timestamp"] = t.exit_timestamp
        row["return_pct"] = t.return_pct
        rows.append(row)
    columns = [
        "side", "entry_price", "exit_price", "entry_timestamp", "exit_timestamp", "notional",
        "leverage", "gross_pnl", "fees", "net_pnl", "exit_reason", "return_pct",
    ]
    return pd.DataFrame(rows, columns=columns)
