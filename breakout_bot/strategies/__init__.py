"""Strategies: signal contract and the breakout rule."""

from breakout_bot.strategies.base import BaseStrategy, SignalFunction
from breakout_bot.strategies.breakout import BreakoutStrategy, breakout_signal

__all__ = ["BaseStrategy", "SignalFunction", "BreakoutStrategy", "breakout_signal"]
