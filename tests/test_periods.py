"""Monthly period backtests."""

import pytest
from breakout_bot.backtesting.periods import month_bounds, monthly_backtests, run_period
from breakout_bot.core.params import StrategyParams

from synthetic import random_walk

PARAMS = StrategyParams(lookback=10, volume_multiplier=1.2)
# 420 four-hour bars: 2024-01-01 through 2024-03-10
CANDLES = random_walk(420, seed=8)


def test_month_bounds():
    labels = [label for label, _, _ in month_bounds(CANDLES)]
    assert labels == ["2024-01", "2024-02", "2024-03"]
    _, start, end = month_bounds(CANDLES)[1]
    assert (start.month, start.day) == (2, 1)
    assert (end.month, end.day) == (2, 29)


def test_monthly_backtests_skip_month_without_warmup():
    summary = monthly_backtests(CANDLES, PARAMS, warmup_bars=20, min_period_bars=10)
    assert [p.label for p in summary.periods] == ["2024-02", "2024-03"]
    assert summary.positive + summary.negative <= 2
    expected = 10000.0
    for p in summary.periods:
        expected *= 1 + p.return_pct / 100.0
    assert summary.compound_balance == pytest.approx(expected)


def test_periods_trade_only_inside_their_month():
    summary = monthly_backtests(CANDLES, PARAMS, warmup_bars=20, min_period_bars=10)
    for p in summary.periods:
        for t in p.result.trades:
            assert p.start <= t.entry_timestamp <= p.end
            assert t.exit_timestamp <= p.end
        assert all(pt.timestamp >= p.start for pt in p.result.equity_curve)


def test_run_period_starts_from_initial_balance():
    _, start, end = month_bounds(CANDLES)[1]
    result = run_period(CANDLES, PARAMS, start, end, warmup_bars=PARAMS.lookback + 1)
    assert result.final_state.initial_balance == 10000.0
    assert result.final_state.settings.trade_start == start
    assert result.final_state.last_timestamp <= end
