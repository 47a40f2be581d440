"""Synthetic candle builders shared by the tests."""

import random
from datetime import datetime, timedelta, timezone

from breakout_bot.core.types import Candle

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
STEP = timedelta(hours=4)


def bar(i, open, high, low, close, volume, step=STEP):
    return Candle(T0 + i * step, open, high, low, close, volume)


def flat_range(n, start=0, high=100.0, low=90.0, close=95.0, volume=10.0):
    """n identical range-bound candles: high=100, low=90, volume=10."""
    return [bar(start + i, close, high, low, close, volume) for i in range(n)]


def breakout_long(close=105.0, volume=25.0):
    """Candles 0-9 range-bound, candle 10 closes at 105 on 2.5x volume."""
    return flat_range(10) + [bar(10, 95.0, max(close, 100.0) + 1.0, 94.0, close, volume)]


def breakout_short(close=85.0, volume=25.0):
    return flat_range(10) + [bar(10, 95.0, 96.0, min(close, 90.0) - 1.0, close, volume)]


def random_walk(n, seed=7, start_price=100.0, spike_every=9):
    """Valid OHLCV random walk with periodic volume spikes so breakouts fire."""
    rng = random.Random(seed)
    candles = []
    price = start_price
    for i in range(n):
        open_ = price
        close = max(1.0, open_ * (1 + rng.gauss(0, 0.02)))
        high = max(open_, close) * (1 + abs(rng.gauss(0, 0.01)))
        low = min(open_, close) * (1 - abs(rng.gauss(0, 0.01)))
        volume = rng.uniform(5, 15) * (4 if i % spike_every == 0 else 1)
        candles.append(bar(i, open_, high, low, close, volume))
        price = close
    return candles
