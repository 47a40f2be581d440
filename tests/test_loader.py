"""Unit tests for data.loader and the CSV feed."""

from datetime import datetime, timezone

import pandas as pd
import pytest
from breakout_bot.core.exceptions import DataError
from breakout_bot.data.loader import (
    candles_from_dataframe,
    candles_to_dataframe,
    equity_to_dataframe,
    load_candles_csv,
    slice_candles,
)
from breakout_bot.core.types import EquityPoint
from breakout_bot.feeds.csv_feed import CsvCandleFeed

from synthetic import STEP, T0, flat_range


def _write_csv(path, rows, time_col="time"):
    lines = [f"{time_col},open,high,low,close,volume"]
    lines += [",".join(str(v) for v in row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_load_csv_with_epoch_ms(tmp_path):
    path = tmp_path / "candles.csv"
    _write_csv(path, [
        (1704067200000, 100, 101, 99, 100.5, 12),
        (1704081600000, 100.5, 102, 100, 101, 8),
    ], time_col="open_time")
    candles = load_candles_csv(path)
    assert len(candles) == 2
    assert candles[0].timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert candles[1].timestamp == datetime(2024, 1, 1, 4, tzinfo=timezone.utc)
    assert candles[0].close == 100.5
    assert candles[1].volume == 8.0


def test_load_csv_with_iso_dates(tmp_path):
    path = tmp_path / "candles.csv"
    _write_csv(path, [("2024-01-01 00:00:00", 100, 101, 99, 100.5, 12)])
    assert load_candles_csv(path)[0].timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_missing_file_and_columns(tmp_path):
    with pytest.raises(DataError):
        load_candles_csv(tmp_path / "nope.csv")
    with pytest.raises(DataError, match="missing columns"):
        candles_from_dataframe(pd.DataFrame({"time": [1], "open": [1.0]}))
    with pytest.raises(DataError, match="no time column"):
        candles_from_dataframe(pd.DataFrame({c: [1.0] for c in ("open", "high", "low", "close", "volume")}))


def test_row_order_is_preserved():
    candles = flat_range(3)
    df = candles_to_dataframe(candles).iloc[::-1]
    assert [c.timestamp for c in candles_from_dataframe(df)] == [c.timestamp for c in reversed(candles)]


def test_slice_candles_with_warmup():
    candles = flat_range(20)
    start, end = T0 + 10 * STEP, T0 + 14 * STEP
    assert slice_candles(candles, start, end) == candles[10:15]
    assert slice_candles(candles, start, end, warmup=3) == candles[7:15]
    assert slice_candles(candles, start, None, warmup=50) == candles
    assert slice_candles(candles, T0 + 30 * STEP) == []


def test_equity_dataframe_drawdown_column():
    curve = [EquityPoint(T0, 100.0), EquityPoint(T0 + STEP, 120.0), EquityPoint(T0 + 2 * STEP, 90.0)]
    df = equity_to_dataframe(curve)
    assert list(df["peak"]) == [100.0, 120.0, 120.0]
    assert df["drawdown_pct"].iloc[-1] == pytest.approx(25.0)


def test_csv_feed_returns_latest(tmp_path):
    path = tmp_path / "feed.csv"
    candles_to_dataframe(flat_range(5)).to_csv(path, index=False)
    feed = CsvCandleFeed(path)
    latest = feed.get_candles("BTCUSDT", "4h", limit=2)
    assert [c.timestamp for c in latest] == [c.timestamp for c in flat_range(5)[-2:]]
