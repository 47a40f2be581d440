"""Data: candle loading and DataFrame conversion."""

from breakout_bot.data.loader import (
    candles_from_dataframe,
    candles_to_dataframe,
    equity_to_dataframe,
    load_candles_csv,
    slice_candles,
    trades_to_dataframe,
)

__all__ = [
    "candles_from_dataframe",
    "candles_to_dataframe",
    "equity_to_dataframe",
    "load_candles_csv",
    "slice_candles",
    "trades_to_dataframe",
]
