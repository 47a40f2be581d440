"""
Position lifecycle: open at the signal candle's close, exit on stop-loss / take-profit
touched by a later candle's range, or forced close at the end of the stream.

Fees are charged per leg: the entry leg when the position opens, the exit leg when it closes.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional, Tuple

from breakout_bot.core.params import StrategyParams
from breakout_bot.core.types import Candle, ExitReason, Position, Side, Trade

# When one bar's range touches both the stop and the target, we cannot know which came first.
# The stop is assumed to fill (worst case for the position).
SAME_BAR_POLICY = "stop_first"


def exit_levels(side: Side, entry_price: float, params: StrategyParams) -> Tuple[float, float]:
    """Return (stop_price, take_profit_price) for an entry."""
    if side == Side.LONG:
        return entry_price * (1 - params.stop_loss_pct), entry_price * (1 + params.take_profit_pct)
    return entry_price * (1 + params.stop_loss_pct), entry_price * (1 - params.take_profit_pct)


def open_position(side: Side, candle: Candle, balance: float, params: StrategyParams) -> Tuple[Position, float]:
    """
    Open at candle.close with notional = balance * position_size_fraction.
    Returns the position and the entry-leg fee to deduct from balance.
    """
    entry_price = candle.close
    notional = balance * params.position_size_fraction
    stop, tp = exit_levels(side, entry_price, params)
    position = Position(
        side=side,
        entry_price=entry_price,
        notional=notional,
        leverage=params.leverage,
        entry_timestamp=candle.timestamp,
        stop_price=stop,
        take_profit_price=tp,
    )
    entry_fee = notional * params.fee_rate_per_side
    return position, entry_fee


def check_exit(position: Position, candle: Candle) -> Optional[Tuple[float, ExitReason]]:
    """
    Test the candle's range against the position's levels. The stop is tested first,
    so a bar touching both closes at the stop. Returns (exit_price, reason) or None.
    """
    if position.side == Side.LONG:
        if candle.low <= position.stop_price:
            return position.stop_price, ExitReason.STOP_LOSS
        if candle.high >= position.take_profit_price:
            return position.take_profit_price, ExitReason.TAKE_PROFIT
    else:
        if candle.high >= position.stop_price:
            return position.stop_price, ExitReason.STOP_LOSS
        if candle.low <= position.take_profit_price:
            return position.take_profit_price, ExitReason.TAKE_PROFIT
    return None


def close_position(
    position: Position,
    exit_price: float,
    exit_timestamp: datetime,
    reason: ExitReason,
    fee_rate_per_side: float,
) -> Tuple[Trade, float]:
    """
    Realize the position. Returns the Trade and the balance change at close
    (gross P&L minus the exit-leg fee; the entry leg was paid at open).
    """
    raw_move = int(position.side) * (exit_price - position.entry_price) / position.entry_price
    gross_pnl = raw_move * position.notional * position.leverage
    leg_fee = position.notional * fee_rate_per_side
    fees = leg_fee * 2
    trade = Trade(
        side=position.side,
        entry_price=position.entry_price,
        exit_price=exit_price,
        entry_timestamp=position.entry_timestamp,
        exit_timestamp=exit_timestamp,
        notional=position.notional,
        leverage=position.leverage,
        gross_pnl=gross_pnl,
        fees=fees,
        net_pnl=gross_pnl - fees,
        exit_reason=reason,
    )
    return trade, gross_pnl - leg_fee
