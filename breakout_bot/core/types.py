"""
Core data types for candles, signals, positions, and trades.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class Side(int, Enum):
    """Direction of exposure; the value is the sign applied to price moves."""
    LONG = 1
    SHORT = -1


class Signal(str, Enum):
    """Entry decision for the current bar."""
    NONE = "none"
    LONG = "long"
    SHORT = "short"

    @property
    def side(self) -> Optional[Side]:
        if self is Signal.LONG:
            return Side.LONG
        if self is Signal.SHORT:
            return Side.SHORT
        return None


class ExitReason(str, Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    FORCED_CLOSE = "forced_close"


def to_utc(ts: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    return to_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class Candle:
    """OHLCV candle. Immutable once produced."""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        if isinstance(self.timestamp, datetime):
            object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @classmethod
    def from_ms(cls, ms: int, open: float, high: float, low: float, close: float, volume: float) -> "Candle":
        """Build from an exchange kline (open time in epoch milliseconds)."""
        ts = datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
        return cls(ts, float(open), float(high), float(low), float(close), float(volume))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Candle":
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=float(data["volume"]),
        )


@dataclass(frozen=True)
class Position:
    """Open position state. notional is the margin committed before leverage."""
    side: Side
    entry_price: float
    notional: float
    leverage: float
    entry_timestamp: datetime
    stop_price: float
    take_profit_price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": int(self.side),
            "entry_price": self.entry_price,
            "notional": self.notional,
            "leverage": self.leverage,
            "entry_timestamp": self.entry_timestamp.isoformat(),
            "stop_price": self.stop_price,
            "take_profit_price": self.take_profit_price,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(
            side=Side(int(data["side"])),
            entry_price=float(data["entry_price"]),
            notional=float(data["notional"]),
            leverage=float(data["leverage"]),
            entry_timestamp=parse_timestamp(data["entry_timestamp"]),
            stop_price=float(data["stop_price"]),
            take_profit_price=float(data["take_profit_price"]),
        )


@dataclass(frozen=True)
class Trade:
    """Closed trade. fees covers both legs; net_pnl = gross_pnl - fees."""
    side: Side
    entry_price: float
    exit_price: float
    entry_timestamp: datetime
    exit_timestamp: datetime
    notional: float
    leverage: float
    gross_pnl: float
    fees: float
    net_pnl: float
    exit_reason: ExitReason

    @property
    def return_pct(self) -> float:
        """Net P&L as a percentage of the committed notional."""
        if self.notional <= 0:
            return 0.0
        return self.net_pnl / self.notional * 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": int(self.side),
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "entry_timestamp": self.entry_timestamp.isoformat(),
            "exit_timestamp": self.exit_timestamp.isoformat(),
            "notional": self.notional,
            "leverage": self.leverage,
            "gross_pnl": self.gross_pnl,
            "fees": self.fees,
            "net_pnl": self.net_pnl,
            "exit_reason": self.exit_reason.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trade":
        return cls(
            side=Side(int(data["side"])),
            entry_price=float(data["entry_price"]),
            exit_price=float(data["exit_price"]),
            entry_timestamp=parse_timestamp(data["entry_timestamp"]),
            exit_timestamp=parse_timestamp(data["exit_timestamp"]),
            notional=float(data["notional"]),
            leverage=float(data["leverage"]),
            gross_pnl=float(data["gross_pnl"]),
            fees=float(data["fees"]),
            net_pnl=float(data["net_pnl"]),
            exit_reason=ExitReason(data["exit_reason"]),
        )


@dataclass(frozen=True)
class EquityPoint:
    timestamp: datetime
    balance: float


@dataclass(frozen=True)
class CandleWarning:
    """A candle the engine rejected, with the reason."""
    timestamp: Optional[datetime]
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandleWarning":
        ts = data.get("timestamp")
        return cls(timestamp=parse_timestamp(ts) if ts else None, reason=str(data["reason"]))
