"""
Ledger: balance, running peak, max drawdown, the append-only trade log and equity samples.

Every method returns a new Ledger; nothing is mutated in place. Balance only moves through
debit_fee (entry leg) and record_close (position close). Peak and drawdown are updated from
the balance seen so far, never from later values.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Tuple

from breakout_bot.core.types import EquityPoint, Trade


@dataclass(frozen=True)
class Ledger:
    balance: float
    peak_balance: float
    max_drawdown_pct: float = 0.0
    trades: Tuple[Trade, ...] = ()
    equity_curve: Tuple[EquityPoint, ...] = ()

    @classmethod
    def start(cls, initial_balance: float) -> "Ledger":
        return cls(balance=initial_balance, peak_balance=initial_balance)

    @property
    def drawdown_pct(self) -> float:
        """Current decline from the running peak, in percent."""
        if self.peak_balance <= 0:
            return 0.0
        return max(0.0, (self.peak_balance - self.balance) / self.peak_balance * 100.0)

    def debit_fee(self, fee: float) -> "Ledger":
        return replace(self, balance=self.balance - fee)

    def record_close(self, trade: Trade, balance_delta: float) -> "Ledger":
        return replace(self, balance=self.balance + balance_delta, trades=self.trades + (trade,))

    def mark(self) -> "Ledger":
        """Update peak, then drawdown against that peak."""
        peak = max(self.peak_balance, self.balance)
        marked = replace(self, peak_balance=peak)
        return replace(marked, max_drawdown_pct=max(self.max_drawdown_pct, marked.drawdown_pct))

    def sample(self, timestamp: datetime) -> "Ledger":
        """Append an equity sample. Samples must move forward in time."""
        if self.equity_curve:
            last = self.equity_curve[-1]
            if timestamp < last.timestamp:
                raise ValueError(f"equity sample at {timestamp} precedes {last.timestamp}")
            if timestamp == last.timestamp:
                # Same bar sampled again (final sample): keep the latest balance
                return replace(self, equity_curve=self.equity_curve[:-1] + (EquityPoint(timestamp, self.balance),))
        return replace(self, equity_curve=self.equity_curve + (EquityPoint(timestamp, self.balance),))
