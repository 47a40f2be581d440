"""Candle feed backed by a CSV file, for replaying paper mode offline."""

from __future__ import annotations
from pathlib import Path
from typing import List

from breakout_bot.core.types import Candle
from breakout_bot.data.loader import load_candles_csv
from breakout_bot.feeds.base import CandleFeed


class CsvCandleFeed(CandleFeed):
    """Re-reads the file on every call, so rows appended between polls are picked up."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get_candles(self, symbol: str, interval: str, limit: int = 50) -> List[Candle]:
        candles = load_candles_csv(self.path)
        return candles[-limit:] if limit > 0 else candles
