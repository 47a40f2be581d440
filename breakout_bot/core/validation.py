"""
Candle sanity checks. A candle that fails is rejected by the engine, never filled against.
"""

from __future__ import annotations
import math
from datetime import datetime
from typing import Optional

from breakout_bot.core.exceptions import DataError
from breakout_bot.core.types import Candle


def validate_candle(candle: Candle, last_timestamp: Optional[datetime] = None) -> None:
    """Raise DataError if the candle is malformed or not strictly after last_timestamp."""
    prices = (candle.open, candle.high, candle.low, candle.close)
    if not all(math.isfinite(p) for p in prices):
        raise DataError(f"non-finite price in candle at {candle.timestamp}")
    if any(p <= 0 for p in prices):
        raise DataError(f"non-positive price in candle at {candle.timestamp}")
    if not math.isfinite(candle.volume) or candle.volume < 0:
        raise DataError(f"invalid volume {candle.volume} at {candle.timestamp}")
    if candle.high < candle.low:
        raise DataError(f"high {candle.high} < low {candle.low} at {candle.timestamp}")
    if not (candle.low <= candle.open <= candle.high and candle.low <= candle.close <= candle.high):
        raise DataError(f"open/close outside high-low range at {candle.timestamp}")
    if last_timestamp is not None and candle.timestamp <= last_timestamp:
        raise DataError(f"out-of-order timestamp {candle.timestamp} (last {last_timestamp})")
