"""Signal function contract and abstract strategy."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Sequence

from breakout_bot.core.params import StrategyParams
from breakout_bot.core.types import Candle, Signal

# (history ending with the current candle, params) -> Signal
SignalFunction = Callable[[Sequence[Candle], StrategyParams], Signal]


class BaseStrategy(ABC):
    """
    A strategy decides the entry for the last candle of history.
    Instances are callable, so they can be passed wherever a SignalFunction is expected.
    """

    @abstractmethod
    def evaluate(self, history: Sequence[Candle], params: StrategyParams) -> Signal:
        """Return the signal for history[-1]. Must not look past the end of history."""
        pass

    def __call__(self, history: Sequence[Candle], params: StrategyParams) -> Signal:
        return self.evaluate(history, params)
