"""
Trade simulation engine: a step-wise fold over candles with no lookahead.

apply_candle(state, candle) is the single step. For each accepted candle it:
  1. checks the open position's stop / target against the candle's range,
  2. realizes P&L on exit,
  3. if flat and the account is not exhausted, evaluates the signal on history up to and
     including this candle and opens at its close (entry fee charged now),
  4. updates peak balance, then max drawdown,
  5. samples equity every `equity_sample_every` bars counted from trade_start (warm-up bars
     are neither sampled nor counted).
Malformed candles are rejected, logged and recorded in state.warnings; the run continues.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from breakout_bot.analytics.metrics import PerformanceMetrics, compute_metrics
from breakout_bot.backtesting.ledger import Ledger
from breakout_bot.backtesting.position import check_exit, close_position, open_position
from breakout_bot.core.exceptions import DataError
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.core.types import (
    Candle,
    CandleWarning,
    EquityPoint,
    ExitReason,
    Position,
    Trade,
)
from breakout_bot.core.validation import validate_candle
from breakout_bot.data.loader import candles_from_dataframe
from breakout_bot.strategies.base import SignalFunction
from breakout_bot.strategies.breakout import breakout_signal

logger = logging.getLogger("breakout_bot.backtest")


@dataclass(frozen=True)
class EngineState:
    """
    Everything needed to resume the engine: parameters, ledger, open position,
    the recent candle window the signal needs, and bookkeeping.
    """
    params: StrategyParams
    settings: EngineSettings
    ledger: Ledger
    position: Optional[Position] = None
    window: Tuple[Candle, ...] = ()
    last_timestamp: Optional[datetime] = None
    bars_seen: int = 0
    trading_bars: int = 0
    exhausted: bool = False
    warnings: Tuple[CandleWarning, ...] = ()

    @property
    def balance(self) -> float:
        return self.ledger.balance

    @property
    def peak_balance(self) -> float:
        return self.ledger.peak_balance

    @property
    def max_drawdown_pct(self) -> float:
        return self.ledger.max_drawdown_pct

    @property
    def trades(self) -> Tuple[Trade, ...]:
        return self.ledger.trades

    @property
    def equity_curve(self) -> Tuple[EquityPoint, ...]:
        return self.ledger.equity_curve

    @property
    def initial_balance(self) -> float:
        return self.settings.initial_balance


def new_state(params: StrategyParams, settings: Optional[EngineSettings] = None) -> EngineState:
    settings = settings or EngineSettings()
    return EngineState(params=params, settings=settings, ledger=Ledger.start(settings.initial_balance))


def _reject(state: EngineState, candle: Candle, error: DataError) -> EngineState:
    logger.warning("Rejected candle: %s", error)
    ts = candle.timestamp if isinstance(candle.timestamp, datetime) else None
    return replace(state, warnings=state.warnings + (CandleWarning(ts, str(error)),))


def apply_candle(
    state: EngineState,
    candle: Candle,
    signal_fn: SignalFunction = breakout_signal,
) -> EngineState:
    """Process one closed candle. Pure: returns a new state, the input is left untouched."""
    try:
        validate_candle(candle, state.last_timestamp)
    except DataError as e:
        return _reject(state, candle, e)

    params, settings = state.params, state.settings
    ledger = state.ledger
    position = state.position
    window = (state.window + (candle,))[-settings.window_size(params):]

    # Exit before any entry on the same bar
    if position is not None:
        hit = check_exit(position, candle)
        if hit is not None:
            exit_price, reason = hit
            trade, delta = close_position(position, exit_price, candle.timestamp, reason, params.fee_rate_per_side)
            ledger = ledger.record_close(trade, delta)
            position = None
            logger.debug(
                "%s %s closed @ %.4f net=%.2f balance=%.2f",
                reason.value, trade.side.name, exit_price, trade.net_pnl, ledger.balance,
            )

    exhausted = state.exhausted
    if not exhausted and ledger.balance <= settings.balance_floor:
        exhausted = True
        logger.warning(
            "Account exhausted at %s: balance %.2f <= floor %.2f; no new positions",
            candle.timestamp, ledger.balance, settings.balance_floor,
        )

    can_enter = settings.trade_start is None or candle.timestamp >= settings.trade_start
    if position is None and not exhausted and can_enter:
        side = signal_fn(window, params).side
        if side is not None:
            position, entry_fee = open_position(side, candle, ledger.balance, params)
            ledger = ledger.debit_fee(entry_fee)
            logger.debug(
                "Open %s @ %.4f notional=%.2f fee=%.2f",
                side.name, position.entry_price, position.notional, entry_fee,
            )

    ledger = ledger.mark()
    # Every Nth bar counted from trade_start
    trading_bars = state.trading_bars + 1 if can_enter else state.trading_bars
    if can_enter and trading_bars % settings.equity_sample_every == 0:
        ledger = ledger.sample(candle.timestamp)

    return replace(
        state,
        ledger=ledger,
        position=position,
        window=window,
        last_timestamp=candle.timestamp,
        bars_seen=state.bars_seen + 1,
        trading_bars=trading_bars,
        exhausted=exhausted,
    )


def finalize(state: EngineState) -> EngineState:
    """
    End of stream: force-close any open position at the last accepted close
    and take a final equity sample.
    """
    if not state.window:
        return state
    last = state.window[-1]
    ledger = state.ledger
    position = state.position
    if position is not None:
        trade, delta = close_position(
            position, last.close, last.timestamp, ExitReason.FORCED_CLOSE, state.params.fee_rate_per_side,
        )
        ledger = ledger.record_close(trade, delta).mark()
        position = None
        logger.debug("forced_close %s @ %.4f net=%.2f", trade.side.name, last.close, trade.net_pnl)
    ledger = ledger.sample(last.timestamp)
    return replace(state, ledger=ledger, position=position)


@dataclass
class BacktestResult:
    """Backtest output: trades, equity samples, metrics and rejected-candle warnings."""
    trades: List[Trade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    metrics: Optional[PerformanceMetrics] = None
    warnings: List[CandleWarning] = field(default_factory=list)
    final_state: Optional[EngineState] = None

    @property
    def final_balance(self) -> float:
        return self.final_state.balance if self.final_state is not None else 0.0


def run_backtest(
    candles: Iterable[Candle],
    params: StrategyParams,
    settings: Optional[EngineSettings] = None,
    signal_fn: SignalFunction = breakout_signal,
    periods_per_year: Optional[float] = None,
) -> BacktestResult:
    """Run the engine over a finite candle series and return trades, equity and metrics."""
    state = new_state(params, settings)
    for candle in candles:
        state = apply_candle(state, candle, signal_fn)
    state = finalize(state)
    metrics = compute_metrics(
        state.trades,
        state.equity_curve,
        state.initial_balance,
        max_drawdown_pct=state.max_drawdown_pct,
        periods_per_year=periods_per_year,
    )
    if state.warnings:
        logger.warning("%d candle(s) rejected during backtest", len(state.warnings))
    return BacktestResult(
        trades=list(state.trades),
        equity_curve=list(state.equity_curve),
        metrics=metrics,
        warnings=list(state.warnings),
        final_state=state,
    )


class BacktestEngine:
    """
    Runs a signal function over historical candles (a Candle sequence or an OHLCV DataFrame
    with columns time, open, high, low, close, volume).
    """

    def __init__(
        self,
        params: StrategyParams,
        settings: Optional[EngineSettings] = None,
        signal_fn: SignalFunction = breakout_signal,
    ):
        self.params = params
        self.settings = settings or EngineSettings()
        self.signal_fn = signal_fn

    def run(
        self,
        data: Union[pd.DataFrame, Sequence[Candle]],
        periods_per_year: Optional[float] = None,
    ) -> BacktestResult:
        if isinstance(data, pd.DataFrame):
            data = candles_from_dataframe(data)
        logger.info("Backtest: %d candles, %s", len(data), self.params.label())
        return run_backtest(data, self.params, self.settings, self.signal_fn, periods_per_year)
