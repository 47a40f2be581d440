"""
Paper trader: on each poll, apply the closed candles newer than the stored state and
persist the state after every one. Restarting resumes from the file, no history replay.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from breakout_bot.backtesting.engine import EngineState, apply_candle
from breakout_bot.core.exceptions import ConfigError, StateError
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.core.types import Trade
from breakout_bot.feeds.base import CandleFeed
from breakout_bot.paper.state_store import StateStore
from breakout_bot.strategies.base import SignalFunction
from breakout_bot.strategies.breakout import breakout_signal

logger = logging.getLogger("breakout_bot.paper")


@dataclass
class TickResult:
    """What one poll did."""
    applied: int
    state: EngineState
    closed_trades: List[Trade] = field(default_factory=list)
    opened: bool = False

    @property
    def action(self) -> str:
        if self.closed_trades and self.opened:
            return "CLOSE_AND_OPEN"
        if self.closed_trades:
            return "CLOSE"
        if self.opened:
            return "OPEN"
        return "HOLD"


class PaperTrader:
    """Drives apply_candle from a CandleFeed and keeps the state in a StateStore."""

    def __init__(
        self,
        feed: CandleFeed,
        store: StateStore,
        params: StrategyParams,
        settings: Optional[EngineSettings] = None,
        symbol: str = "BTCUSDT",
        interval: str = "4h",
        limit: int = 50,
        signal_fn: SignalFunction = breakout_signal,
    ):
        self.feed = feed
        self.store = store
        self.params = params
        self.settings = settings
        self.symbol = symbol
        self.interval = interval
        self.limit = limit
        self.signal_fn = signal_fn

    def tick(self) -> TickResult:
        state = self.store.load(self.params, self.settings)
        candles = self.feed.get_candles(self.symbol, self.interval, self.limit)
        last = state.last_timestamp
        fresh = [c for c in candles if last is None or c.timestamp > last]
        if last is not None and fresh and len(fresh) == len(candles):
            logger.warning(
                "Feed returned no overlap with last processed bar %s; bars may have been missed", last,
            )
        trades_before = len(state.trades)
        opened = False
        for candle in fresh:
            prev_position = state.position
            prev_trades = len(state.trades)
            state = apply_candle(state, candle, self.signal_fn)
            self.store.save(state)
            if state.position is not None and (prev_position is None or len(state.trades) > prev_trades):
                opened = True
        closed = list(state.trades[trades_before:])
        for t in closed:
            logger.info(
                "%s %s %.4f -> %.4f net=%.2f", t.exit_reason.value, t.side.name, t.entry_price, t.exit_price, t.net_pnl,
            )
        logger.info(
            "Tick %s %s: %d new bar(s), balance=%.2f, position=%s",
            self.symbol, self.interval, len(fresh), state.balance,
            f"{state.position.side.name} @ {state.position.entry_price}" if state.position else "NONE",
        )
        return TickResult(applied=len(fresh), state=state, closed_trades=closed, opened=opened)

    def run_forever(self, poll_seconds: float) -> None:
        """Poll until interrupted. A failed poll is logged and retried on the next interval."""
        while True:
            try:
                self.tick()
            except KeyboardInterrupt:
                logger.info("Shutdown by user")
                break
            except (ConfigError, StateError):
                raise
            except Exception as e:
                logger.exception("Paper loop error: %s", e)
            try:
                time.sleep(poll_seconds)
            except KeyboardInterrupt:
                logger.info("Shutdown by user")
                break
