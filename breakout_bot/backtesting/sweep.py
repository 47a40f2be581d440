"""
Parameter sweep: independent backtests of many StrategyParams over the same candles.

Each combination runs in its own worker with its own engine state; nothing is shared.
Cancellation (KeyboardInterrupt or cancel_event) takes effect between combinations.
The results file is written atomically, and only when the sweep completed.
"""

from __future__ import annotations
import itertools
import logging
import os
import threading
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait, FIRST_COMPLETED
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from breakout_bot.backtesting.engine import run_backtest
from breakout_bot.core.exceptions import ConfigError
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.core.types import Candle
from breakout_bot.utils.io import write_json_atomic

logger = logging.getLogger("breakout_bot.backtest.sweep")

PARAM_FIELDS = tuple(f.name for f in fields(StrategyParams))


@dataclass
class SweepResult:
    """Summary of one combination."""
    index: int
    params: StrategyParams
    total_trades: int
    win_rate: float
    total_return_pct: float
    final_balance: float
    max_drawdown_pct: float
    profit_factor: float
    sharpe_ratio: float
    expectancy: float
    rejected_candles: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "params": self.params.to_dict(),
            "total_trades": self.total_trades,
            "win_rate": self.win_rate,
            "total_return_pct": self.total_return_pct,
            "final_balance": self.final_balance,
            "max_drawdown_pct": self.max_drawdown_pct,
            "profit_factor": self.profit_factor,
            "sharpe_ratio": self.sharpe_ratio,
            "expectancy": self.expectancy,
            "rejected_candles": self.rejected_candles,
        }


@dataclass
class SweepReport:
    results: List[SweepResult] = field(default_factory=list)
    total: int = 0
    cancelled: bool = False

    def ranked(self, key: str = "total_return_pct") -> List[SweepResult]:
        return sorted(self.results, key=lambda r: getattr(r, key), reverse=True)


def param_grid(base: StrategyParams, grid: Dict[str, Iterable[Any]]) -> List[StrategyParams]:
    """
    Cartesian product of the grid values over `base`. Unknown names or invalid
    combinations raise ConfigError before anything runs.
    """
    unknown = [name for name in grid if name not in PARAM_FIELDS]
    if unknown:
        raise ConfigError("grid", unknown, f"unknown parameter(s), expected from {PARAM_FIELDS}")
    names = list(grid)
    values = [list(grid[name]) for name in names]
    for name, vals in zip(names, values):
        if not vals:
            raise ConfigError("grid", name, "no values")
    return [replace(base, **dict(zip(names, combo))) for combo in itertools.product(*values)]


def run_combination(
    index: int,
    candles: Sequence[Candle],
    params: StrategyParams,
    settings: Optional[EngineSettings] = None,
) -> SweepResult:
    """Backtest a single combination. Module-level so process pools can pickle it."""
    result = run_backtest(candles, params, settings)
    m = result.metrics
    return SweepResult(
        index=index,
        params=params,
        total_trades=m.total_trades,
        win_rate=m.win_rate,
        total_return_pct=m.total_return_pct,
        final_balance=m.final_balance,
        max_drawdown_pct=m.max_drawdown_pct,
        profit_factor=m.profit_factor,
        sharpe_ratio=m.sharpe_ratio,
        expectancy=m.expectancy,
        rejected_candles=len(result.warnings),
    )


def _make_executor(max_workers: int, use_processes: bool) -> Executor:
    if use_processes:
        return ProcessPoolExecutor(max_workers=max_workers)
    return ThreadPoolExecutor(max_workers=max_workers)


def run_sweep(
    candles: Sequence[Candle],
    combinations: Sequence[StrategyParams],
    settings: Optional[EngineSettings] = None,
    max_workers: Optional[int] = None,
    output_path: Optional[Path] = None,
    cancel_event: Optional[threading.Event] = None,
    use_processes: bool = True,
) -> SweepReport:
    """
    Run every combination and return results in combination order.
    max_workers=1 runs in-process without a pool.
    """
    candles = list(candles)
    total = len(combinations)
    report = SweepReport(total=total)
    logger.info("Sweep: %d combinations over %d candles", total, len(candles))

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    try:
        if max_workers == 1:
            for i, params in enumerate(combinations):
                if cancelled():
                    report.cancelled = True
                    break
                report.results.append(run_combination(i, candles, params, settings))
                _log_progress(len(report.results), total)
        else:
            _run_pooled(candles, combinations, settings, max_workers or None, use_processes, report, cancelled)
    except KeyboardInterrupt:
        logger.warning("Sweep interrupted after %d/%d combinations", len(report.results), total)
        report.cancelled = True

    report.results.sort(key=lambda r: r.index)
    if report.cancelled:
        logger.warning("Sweep cancelled; %d/%d done, results file not written", len(report.results), total)
        return report
    if output_path is not None:
        write_json_atomic(output_path, {
            "total": total,
            "results": [r.to_dict() for r in report.results],
        })
        logger.info("Sweep results written: %s", output_path)
    return report


def _run_pooled(
    candles: List[Candle],
    combinations: Sequence[StrategyParams],
    settings: Optional[EngineSettings],
    max_workers: Optional[int],
    use_processes: bool,
    report: SweepReport,
    cancelled,
) -> None:
    """Keep at most `workers` combinations in flight so cancellation is prompt."""
    workers = max_workers or os.cpu_count() or 1
    executor = _make_executor(workers, use_processes)
    pending: set[Future] = set()
    queue = iter(enumerate(combinations))
    try:
        while True:
            while len(pending) < workers and not cancelled():
                item = next(queue, None)
                if item is None:
                    break
                i, params = item
                pending.add(executor.submit(run_combination, i, candles, params, settings))
            if not pending:
                break
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                report.results.append(future.result())
                _log_progress(len(report.results), len(combinations))
        if cancelled() and len(report.results) < len(combinations):
            report.cancelled = True
    finally:
        for future in pending:
            future.cancel()
        executor.shutdown(wait=True, cancel_futures=True)


def _log_progress(done: int, total: int) -> None:
    if done == total or done % 25 == 0:
        logger.info("Sweep %d/%d", done, total)
