"""Paper mode: persisted engine state driven by a polled candle feed."""

from breakout_bot.paper.state_store import StateStore, state_from_dict, state_to_dict
from breakout_bot.paper.trader import PaperTrader, TickResult

__all__ = ["StateStore", "state_from_dict", "state_to_dict", "PaperTrader", "TickResult"]
