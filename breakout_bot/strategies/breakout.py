"""
Breakout with volume filter: close beyond the N-bar high/low on above-average volume.
Uses only the candles in the history it is given; the last one is the current bar.
"""

from __future__ import annotations
from typing import Sequence

from breakout_bot.core.params import StrategyParams
from breakout_bot.core.types import Candle, Signal
from breakout_bot.strategies.base import BaseStrategy


def breakout_signal(history: Sequence[Candle], params: StrategyParams) -> Signal:
    """
    Long if close > highest high of the previous `lookback` candles, short if close < lowest low,
    and only when volume >= volume_multiplier * their average volume. Ties do not trigger.
    """
    lookback = params.lookback
    if len(history) < lookback + 1:
        return Signal.NONE
    current = history[-1]
    window = history[-lookback - 1:-1]
    highest_high = max(c.high for c in window)
    lowest_low = min(c.low for c in window)
    avg_volume = sum(c.volume for c in window) / lookback
    # Zero average volume gives no usable ratio
    if avg_volume <= 0:
        return Signal.NONE
    if current.volume < avg_volume * params.volume_multiplier:
        return Signal.NONE
    if current.close > highest_high:
        return Signal.LONG
    if current.close < lowest_low:
        return Signal.SHORT
    return Signal.NONE


class BreakoutStrategy(BaseStrategy):
    """Object form of breakout_signal."""

    def evaluate(self, history: Sequence[Candle], params: StrategyParams) -> Signal:
        return breakout_signal(history, params)
