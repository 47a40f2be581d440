"""
Strategy parameters and engine settings. Both are frozen and validated on construction,
so an invalid value fails before any candle is processed.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Optional

from breakout_bot.core.exceptions import ConfigError


def _finite(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ConfigError(name, value, "must be a finite number")


@dataclass(frozen=True)
class StrategyParams:
    """Breakout strategy, sizing, leverage and fee parameters."""
    lookback: int = 10
    volume_multiplier: float = 2.0
    stop_loss_pct: float = 0.03
    take_profit_pct: float = 0.06
    position_size_fraction: float = 0.2
    leverage: float = 5.0
    fee_rate_per_side: float = 0.001

    def __post_init__(self) -> None:
        if isinstance(self.lookback, bool) or not isinstance(self.lookback, int) or self.lookback <= 0:
            raise ConfigError("lookback", self.lookback, "must be an integer > 0")
        for name in (
            "volume_multiplier", "stop_loss_pct", "take_profit_pct",
            "position_size_fraction", "leverage", "fee_rate_per_side",
        ):
            _finite(name, getattr(self, name))
        if self.volume_multiplier < 0:
            raise ConfigError("volume_multiplier", self.volume_multiplier, "must be >= 0")
        if not 0 < self.stop_loss_pct < 1:
            raise ConfigError("stop_loss_pct", self.stop_loss_pct, "must be in (0, 1)")
        if self.take_profit_pct <= 0:
            raise ConfigError("take_profit_pct", self.take_profit_pct, "must be > 0")
        if not 0 < self.position_size_fraction <= 1:
            raise ConfigError("position_size_fraction", self.position_size_fraction, "must be in (0, 1]")
        if self.leverage < 1:
            raise ConfigError("leverage", self.leverage, "must be >= 1")
        if self.fee_rate_per_side < 0:
            raise ConfigError("fee_rate_per_side", self.fee_rate_per_side, "must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StrategyParams":
        return cls(**data)

    def label(self) -> str:
        return (
            f"lb={self.lookback} vol={self.volume_multiplier:g}x sl={self.stop_loss_pct:.2%} "
            f"tp={self.take_profit_pct:.2%} size={self.position_size_fraction:g} lev={self.leverage:g}x"
        )


FEE_PAPER = 0.001   # 0.1% taker
FEE_LIVE = 0.0004   # futures taker with BNB discount

PRESETS: dict[str, StrategyParams] = {
    "breakout": StrategyParams(),
    "breakout_tight_stop": StrategyParams(stop_loss_pct=0.025),
    "breakout_loose_volume": StrategyParams(volume_multiplier=1.5),
    "breakout_wide": StrategyParams(lookback=15, take_profit_pct=0.08),
    "breakout_live": StrategyParams(fee_rate_per_side=FEE_LIVE),
}


def get_preset(name: str) -> StrategyParams:
    try:
        return PRESETS[name]
    except KeyError:
        raise ConfigError("preset", name, f"unknown preset, expected one of {sorted(PRESETS)}") from None


@dataclass(frozen=True)
class EngineSettings:
    """
    Account and bookkeeping settings that are not part of the strategy itself.

    balance_floor: at or below this balance no new positions are opened.
    equity_sample_every: record an equity sample every N accepted bars.
    trade_start: entries are only allowed on candles at or after this time (warm-up before it).
    history_size: candles kept for the signal function; defaults to lookback + 1.
    """
    initial_balance: float = 10000.0
    balance_floor: float = 0.0
    equity_sample_every: int = 1
    trade_start: Optional[datetime] = None
    history_size: Optional[int] = None

    def __post_init__(self) -> None:
        _finite("initial_balance", self.initial_balance)
        _finite("balance_floor", self.balance_floor)
        if self.initial_balance <= 0:
            raise ConfigError("initial_balance", self.initial_balance, "must be > 0")
        if self.balance_floor >= self.initial_balance:
            raise ConfigError("balance_floor", self.balance_floor, "must be below initial_balance")
        if not isinstance(self.equity_sample_every, int) or self.equity_sample_every < 1:
            raise ConfigError("equity_sample_every", self.equity_sample_every, "must be an integer >= 1")
        if self.history_size is not None and (not isinstance(self.history_size, int) or self.history_size < 1):
            raise ConfigError("history_size", self.history_size, "must be an integer >= 1")

    def window_size(self, params: StrategyParams) -> int:
        return self.history_size or params.lookback + 1
