"""
Performance metrics from closed trades and equity samples: win rate, profit factor,
average win/loss, expectancy, Sharpe, Sortino, max drawdown, monthly returns.

All functions are pure; calling them twice on the same input gives the same output.
Percent values (*_pct) are on a 0..100 scale.
"""

from __future__ import annotations
import statistics
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from breakout_bot.core.types import EquityPoint, Trade

# Returned instead of infinity when there is profit but no loss.
PROFIT_FACTOR_CAP = 99.0

SECONDS_PER_YEAR = 365.0 * 24 * 3600  # crypto markets trade every day
DEFAULT_PERIODS_PER_YEAR = 365.0


@dataclass(frozen=True)
class MonthlyReturn:
    year: int
    month: int
    start_balance: float
    end_balance: float
    return_pct: float
    trades: int


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics."""
    total_return_pct: float
    final_balance: float
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown_pct: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    gross_profit: float
    gross_loss: float
    total_fees: float
    monthly_sharpe: float = 0.0
    best_month_pct: float = 0.0
    worst_month_pct: float = 0.0
    monthly_returns: List[MonthlyReturn] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def period_returns(equity: Sequence[float]) -> List[float]:
    """r_i = (e_i - e_{i-1}) / e_{i-1}. Steps from a non-positive balance are skipped."""
    return [
        (cur - prev) / prev
        for prev, cur in zip(equity[:-1], equity[1:])
        if prev > 0
    ]


def sharpe_ratio(returns: Sequence[float], periods_per_year: float = DEFAULT_PERIODS_PER_YEAR) -> float:
    """Annualized Sharpe (zero risk-free rate). 0 with fewer than 2 returns or zero deviation."""
    if len(returns) < 2:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    std = arr.std(ddof=1)
    if std <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * arr.mean() / std)


def sortino_ratio(returns: Sequence[float], periods_per_year: float = DEFAULT_PERIODS_PER_YEAR) -> float:
    """Annualized Sortino (downside deviation of negative returns)."""
    if len(returns) < 2:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    downside = arr[arr < 0]
    if len(downside) < 2 or downside.std(ddof=1) <= 1e-12:
        return sharpe_ratio(returns, periods_per_year)
    return float(np.sqrt(periods_per_year) * arr.mean() / downside.std(ddof=1))


def max_drawdown(equity: Sequence[float]) -> float:
    """Max drawdown in percent (e.g. 15.0 = 15%) against the running peak."""
    if not equity:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(arr)
    dd = (peak - arr) / np.where(peak > 0, peak, 1.0)
    return float(np.max(dd)) * 100.0


def win_rate(pnls: Sequence[float]) -> float:
    """Fraction of trades with positive net P&L."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss. PROFIT_FACTOR_CAP if no losses, 0 if no profit either."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return PROFIT_FACTOR_CAP if wins > 0 else 0.0
    return wins / losses


def expectancy(pnls: Sequence[float]) -> float:
    """win_rate * avg_win - (1 - win_rate) * avg_loss, avg_loss as a positive magnitude."""
    if not pnls:
        return 0.0
    wr = win_rate(pnls)
    avg_win, avg_loss = _avg_win_loss(pnls)
    return wr * avg_win - (1 - wr) * avg_loss


def _avg_win_loss(pnls: Sequence[float]) -> Tuple[float, float]:
    wins = [p for p in pnls if p > 0]
    non_wins = [-p for p in pnls if p <= 0]
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(non_wins) / len(non_wins) if non_wins else 0.0
    return avg_win, avg_loss


def periods_per_year_for(equity_curve: Sequence[EquityPoint]) -> float:
    """Annualization factor implied by the median spacing of the equity samples."""
    if len(equity_curve) < 2:
        return DEFAULT_PERIODS_PER_YEAR
    gaps = [
        (b.timestamp - a.timestamp).total_seconds()
        for a, b in zip(equity_curve[:-1], equity_curve[1:])
    ]
    step = statistics.median(gaps)
    if step <= 0:
        return DEFAULT_PERIODS_PER_YEAR
    return SECONDS_PER_YEAR / step


def monthly_returns(
    equity_curve: Sequence[EquityPoint],
    initial_balance: float,
    trades: Sequence[Trade] = (),
) -> List[MonthlyReturn]:
    """
    Calendar-month returns. A month starts from the previous month's closing balance
    (initial_balance for the first month). Trades are counted in their exit month.
    """
    closes: Dict[Tuple[int, int], float] = {}
    for point in equity_curve:
        closes[(point.timestamp.year, point.timestamp.month)] = point.balance
    counts: Dict[Tuple[int, int], int] = {}
    for t in trades:
        key = (t.exit_timestamp.year, t.exit_timestamp.month)
        counts[key] = counts.get(key, 0) + 1
    result = []
    start = initial_balance
    for key in sorted(closes):
        end = closes[key]
        ret = (end - start) / start * 100.0 if start > 0 else 0.0
        result.append(MonthlyReturn(
            year=key[0], month=key[1], start_balance=start, end_balance=end,
            return_pct=ret, trades=counts.get(key, 0),
        ))
        start = end
    return result


def compute_metrics(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_balance: float,
    max_drawdown_pct: Optional[float] = None,
    periods_per_year: Optional[float] = None,
) -> PerformanceMetrics:
    """
    Compute full metrics from closed trades and equity samples.
    max_drawdown_pct: the ledger's running value; recomputed from the samples only when None.
    periods_per_year: annualization for Sharpe/Sortino; inferred from sample spacing when None.
    """
    pnls = [t.net_pnl for t in trades]
    balances = [p.balance for p in equity_curve]
    final_balance = balances[-1] if balances else initial_balance
    total_return_pct = (final_balance - initial_balance) / initial_balance * 100.0
    ppy = periods_per_year if periods_per_year is not None else periods_per_year_for(equity_curve)
    rets = period_returns(balances)
    if max_drawdown_pct is None:
        max_drawdown_pct = max_drawdown([initial_balance] + balances)

    months = monthly_returns(equity_curve, initial_balance, trades)
    month_pcts = [m.return_pct / 100.0 for m in months]
    avg_win, avg_loss = _avg_win_loss(pnls)
    wins = [p for p in pnls if p > 0]

    return PerformanceMetrics(
        total_return_pct=total_return_pct,
        final_balance=final_balance,
        sharpe_ratio=sharpe_ratio(rets, ppy),
        sortino_ratio=sortino_ratio(rets, ppy),
        max_drawdown_pct=max_drawdown_pct,
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=sum(1 for p in pnls if p < 0),
        avg_win=avg_win,
        avg_loss=avg_loss,
        gross_profit=sum(wins),
        gross_loss=sum(-p for p in pnls if p < 0),
        total_fees=sum(t.fees for t in trades),
        monthly_sharpe=sharpe_ratio(month_pcts, 12.0),
        best_month_pct=max((m.return_pct for m in months), default=0.0),
        worst_month_pct=min((m.return_pct for m in months), default=0.0),
        monthly_returns=months,
    )
