#!/usr/bin/env python3
"""
Breakout bot CLI: backtest | periods | sweep | paper
Usage:
  python main.py backtest [--config config.yaml] [--data candles.csv]
  python main.py periods [--config config.yaml] [--data candles.csv]
  python main.py sweep [--config config.yaml] [--data candles.csv] [--workers N]
  python main.py paper [--config config.yaml] [--data candles.csv] [--loop]
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from breakout_bot.backtesting.engine import BacktestEngine
from breakout_bot.backtesting.periods import monthly_backtests, run_period
from breakout_bot.backtesting.sweep import param_grid, run_sweep
from breakout_bot.core.config import Config, load_config
from breakout_bot.core.exceptions import BreakoutBotError
from breakout_bot.core.logger import setup_logging
from breakout_bot.data.loader import load_candles_csv
from breakout_bot.feeds.binance import BinanceKlineFeed
from breakout_bot.feeds.csv_feed import CsvCandleFeed
from breakout_bot.paper.state_store import StateStore
from breakout_bot.paper.trader import PaperTrader
from breakout_bot.utils.timeframes import bars_per_year, timeframe_minutes

ROOT = Path(__file__).resolve().parent

logger = logging.getLogger("breakout_bot")


def _setup(config_path: Optional[Path]) -> Config:
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    return config


def _data_file(config: Config, override: Optional[Path]) -> Path:
    path = override or config.data_file
    if path is None:
        raise BreakoutBotError("No candle file: pass --data or set backtest.data_file / DATA_FILE")
    return path


def run_backtest_cmd(config_path: Optional[Path], data: Optional[Path]) -> int:
    """Backtest the configured params over the candle file (optionally a date range)."""
    config = _setup(config_path)
    candles = load_candles_csv(_data_file(config, data))
    ppy = bars_per_year(config.timeframe) / config.settings.equity_sample_every
    if config.backtest_start or config.backtest_end:
        result = run_period(
            candles, config.params, config.backtest_start, config.backtest_end,
            config.settings, warmup_bars=config.params.lookback + 1,
        )
    else:
        result = BacktestEngine(config.params, config.settings).run(candles, periods_per_year=ppy)
    m = result.metrics
    print("\n--- Backtest Results ---")
    print(f"Params: {config.params.label()}")
    print(f"Total trades: {m.total_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
    print(f"Final balance: {m.final_balance:.2f}")
    print(f"Total return: {m.total_return_pct:.2f}%")
    print(f"Sharpe ratio: {m.sharpe_ratio:.2f} (monthly: {m.monthly_sharpe:.2f})")
    print(f"Sortino ratio: {m.sortino_ratio:.2f}")
    print(f"Max drawdown: {m.max_drawdown_pct:.2f}%")
    print(f"Win rate: {m.win_rate*100:.1f}%")
    print(f"Profit factor: {m.profit_factor:.2f}")
    print(f"Expectancy: {m.expectancy:.2f} USD/trade")
    print(f"Fees paid: {m.total_fees:.2f}")
    if result.warnings:
        print(f"Rejected candles: {len(result.warnings)}")
        for w in result.warnings[:10]:
            print(f"  {w.timestamp}: {w.reason}")
    return 0


def run_periods_cmd(config_path: Optional[Path], data: Optional[Path]) -> int:
    """Independent backtest per calendar month."""
    config = _setup(config_path)
    candles = load_candles_csv(_data_file(config, data))
    summary = monthly_backtests(candles, config.params, config.settings, warmup_bars=config.warmup_bars)
    print(f"\n{'Month':<10}{'Trades':>8}{'WR%':>7}{'Return':>9}{'MaxDD':>8}{'PF':>7}")
    print("-" * 49)
    for p in summary.periods:
        m = p.result.metrics
        wr = f"{m.win_rate*100:.0f}%" if m.total_trades else "-"
        print(
            f"{p.label:<10}{m.total_trades:>8}{wr:>7}{m.total_return_pct:>8.1f}%"
            f"{m.max_drawdown_pct:>7.1f}%{m.profit_factor:>7.2f}"
        )
    print("-" * 49)
    n = len(summary.periods)
    print(f"{n} months | {summary.positive} positive | {summary.negative} negative")
    if n:
        print(
            f"Avg monthly: {summary.avg_return_pct:.1f}% | best: {summary.best_return_pct:.1f}% "
            f"| worst: {summary.worst_return_pct:.1f}%"
        )
    print(f"Compounded: {summary.compound_balance:.2f}")
    return 0


def run_sweep_cmd(config_path: Optional[Path], data: Optional[Path], workers: Optional[int]) -> int:
    """Grid over the params listed under sweep.grid in config.yaml."""
    config = _setup(config_path)
    if not config.sweep_grid:
        logger.error("sweep.grid is empty in config")
        return 1
    candles = load_candles_csv(_data_file(config, data))
    combos = param_grid(config.params, config.sweep_grid)
    report = run_sweep(
        candles, combos, config.settings,
        max_workers=workers or config.sweep_workers,
        output_path=config.sweep_output,
    )
    print(f"\n--- Sweep: {len(report.results)}/{report.total} combinations ---")
    for r in report.ranked()[:10]:
        print(
            f"{r.params.label():<60} trades={r.total_trades:<4} ret={r.total_return_pct:>8.2f}% "
            f"dd={r.max_drawdown_pct:>6.2f}% pf={r.profit_factor:>5.2f}"
        )
    return 130 if report.cancelled else 0


def run_paper_cmd(config_path: Optional[Path], data: Optional[Path], loop: bool) -> int:
    """One poll (or a polling loop) against Binance klines, or a CSV file with --data."""
    config = _setup(config_path)
    feed = CsvCandleFeed(data) if data else BinanceKlineFeed()
    trader = PaperTrader(
        feed=feed,
        store=StateStore(config.state_file),
        params=config.params,
        settings=config.settings,
        symbol=config.symbol,
        interval=config.timeframe,
        limit=config.candle_limit,
    )
    if loop:
        trader.run_forever(poll_seconds=timeframe_minutes(config.timeframe) * 60 / 4)
        return 0
    tick = trader.tick()
    state = tick.state
    print(f"Action: {tick.action} | new bars: {tick.applied} | balance: {state.balance:.2f}")
    if state.position:
        print(f"Position: {state.position.side.name} @ {state.position.entry_price}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Breakout bot CLI")
    parser.add_argument("mode", choices=["backtest", "periods", "sweep", "paper"], help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--data", type=Path, default=None, help="Candle CSV (time, open, high, low, close, volume)")
    parser.add_argument("--workers", type=int, default=None, help="Sweep worker processes")
    parser.add_argument("--loop", action="store_true", help="Paper mode: keep polling")
    args = parser.parse_args()
    try:
        if args.mode == "backtest":
            return run_backtest_cmd(args.config, args.data)
        if args.mode == "periods":
            return run_periods_cmd(args.config, args.data)
        if args.mode == "sweep":
            return run_sweep_cmd(args.config, args.data, args.workers)
        return run_paper_cmd(args.config, args.data, args.loop)
    except BreakoutBotError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
