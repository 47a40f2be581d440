"""Analytics: performance metrics (Sharpe, Sortino, MDD, win rate, etc.)."""

from breakout_bot.analytics.metrics import (
    PROFIT_FACTOR_CAP,
    MonthlyReturn,
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    monthly_returns,
    periods_per_year_for,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "PROFIT_FACTOR_CAP",
    "MonthlyReturn",
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "monthly_returns",
    "periods_per_year_for",
    "win_rate",
    "profit_factor",
    "expectancy",
]
