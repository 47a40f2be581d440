"""
Period backtests: one independent run per calendar month, each starting from the same
initial balance, with earlier candles as signal warm-up (no entries before the month starts).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from breakout_bot.backtesting.engine import BacktestResult, run_backtest
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.core.types import Candle
from breakout_bot.data.loader import slice_candles

logger = logging.getLogger("breakout_bot.backtest.periods")


@dataclass
class PeriodResult:
    label: str
    start: datetime
    end: datetime
    result: BacktestResult

    @property
    def return_pct(self) -> float:
        return self.result.metrics.total_return_pct


@dataclass
class PeriodSummary:
    periods: List[PeriodResult] = field(default_factory=list)
    positive: int = 0
    negative: int = 0
    avg_return_pct: float = 0.0
    best_return_pct: float = 0.0
    worst_return_pct: float = 0.0
    compound_balance: float = 0.0


def month_bounds(candles: Sequence[Candle]) -> List[tuple]:
    """(label, start, end) for each calendar month the candles touch, in order."""
    months = []
    seen = set()
    for c in candles:
        key = (c.timestamp.year, c.timestamp.month)
        if key in seen:
            continue
        seen.add(key)
        start = datetime(key[0], key[1], 1, tzinfo=timezone.utc)
        nxt = datetime(key[0] + (key[1] == 12), key[1] % 12 + 1, 1, tzinfo=timezone.utc)
        months.append((f"{key[0]:04d}-{key[1]:02d}", start, nxt - timedelta(microseconds=1)))
    return months


def run_period(
    candles: Sequence[Candle],
    params: StrategyParams,
    start: Optional[datetime],
    end: Optional[datetime],
    settings: Optional[EngineSettings] = None,
    warmup_bars: int = 0,
) -> BacktestResult:
    """Backtest start..end (either may be open); `warmup_bars` earlier candles only fill the signal window."""
    settings = replace(settings or EngineSettings(), trade_start=start)
    return run_backtest(slice_candles(candles, start, end, warmup_bars), params, settings)


def monthly_backtests(
    candles: Sequence[Candle],
    params: StrategyParams,
    settings: Optional[EngineSettings] = None,
    warmup_bars: int = 200,
    min_period_bars: int = 10,
) -> PeriodSummary:
    """
    Run every month independently. Months without a full warm-up plus `min_period_bars`
    of their own are skipped. The compound balance chains the monthly returns.
    """
    settings = settings or EngineSettings()
    summary = PeriodSummary(compound_balance=settings.initial_balance)
    for label, start, end in month_bounds(candles):
        window = slice_candles(candles, start, end, warmup_bars)
        in_range = sum(1 for c in window if c.timestamp >= start)
        if len(window) - in_range < warmup_bars or in_range < min_period_bars:
            logger.debug("Skipping %s: %d warm-up, %d in-range bars", label, len(window) - in_range, in_range)
            continue
        result = run_backtest(window, params, replace(settings, trade_start=start))
        period = PeriodResult(label=label, start=start, end=end, result=result)
        summary.periods.append(period)
        ret = period.return_pct
        if ret > 0:
            summary.positive += 1
        elif ret < 0:
            summary.negative += 1
        summary.compound_balance *= 1 + ret / 100.0
        logger.info(
            "%s trades=%d return=%.2f%% maxDD=%.2f%% pf=%.2f",
            label, result.metrics.total_trades, ret, result.metrics.max_drawdown_pct, result.metrics.profit_factor,
        )
    returns = [p.return_pct for p in summary.periods]
    if returns:
        summary.avg_return_pct = sum(returns) / len(returns)
        summary.best_return_pct = max(returns)
        summary.worst_return_pct = min(returns)
    return summary
