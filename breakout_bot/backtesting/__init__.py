"""Backtesting: step engine, position lifecycle, ledger, sweeps and period runs."""

from breakout_bot.backtesting.engine import (
    BacktestEngine,
    BacktestResult,
    EngineState,
    apply_candle,
    finalize,
    new_state,
    run_backtest,
)
from breakout_bot.backtesting.ledger import Ledger
from breakout_bot.backtesting.periods import PeriodResult, PeriodSummary, monthly_backtests, run_period
from breakout_bot.backtesting.position import SAME_BAR_POLICY, check_exit, close_position, open_position
from breakout_bot.backtesting.sweep import SweepReport, SweepResult, param_grid, run_sweep

__all__ = [
    "BacktestEngine",
    "BacktestResult",
    "EngineState",
    "apply_candle",
    "finalize",
    "new_state",
    "run_backtest",
    "Ledger",
    "PeriodResult",
    "PeriodSummary",
    "monthly_backtests",
    "run_period",
    "SAME_BAR_POLICY",
    "check_exit",
    "close_position",
    "open_position",
    "SweepReport",
    "SweepResult",
    "param_grid",
    "run_sweep",
]
