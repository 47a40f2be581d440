"""Abstract candle feed used by paper mode."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

from breakout_bot.core.types import Candle


class CandleFeed(ABC):
    """Source of closed candles, oldest first."""

    @abstractmethod
    def get_candles(self, symbol: str, interval: str, limit: int = 50) -> List[Candle]:
        """Return up to `limit` most recent closed candles. The still-forming bar is excluded."""
        pass
