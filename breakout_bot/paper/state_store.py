"""
Durable engine state for paper mode: JSON on disk, rewritten atomically after every candle.

Layout (top level): version, params, settings, balance, peak_balance, max_drawdown_pct,
open_position, trades, equity_curve, window, last_timestamp, bars_seen, trading_bars, exhausted,
warnings.
"""

from __future__ import annotations
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

from breakout_bot.backtesting.engine import EngineState, new_state
from breakout_bot.backtesting.ledger import Ledger
from breakout_bot.core.exceptions import ConfigError, StateError
from breakout_bot.core.params import EngineSettings, StrategyParams
from breakout_bot.core.types import (
    Candle,
    CandleWarning,
    EquityPoint,
    Position,
    Trade,
    parse_timestamp,
)
from breakout_bot.utils.io import read_json, write_json_atomic

logger = logging.getLogger("breakout_bot.paper.state")

STATE_VERSION = 1


def _settings_to_dict(settings: EngineSettings) -> Dict[str, Any]:
    data = asdict(settings)
    data["trade_start"] = settings.trade_start.isoformat() if settings.trade_start else None
    return data


def _settings_from_dict(data: Dict[str, Any]) -> EngineSettings:
    data = dict(data)
    if data.get("trade_start"):
        data["trade_start"] = parse_timestamp(data["trade_start"])
    return EngineSettings(**data)


def state_to_dict(state: EngineState) -> Dict[str, Any]:
    return {
        "version": STATE_VERSION,
        "params": state.params.to_dict(),
        "settings": _settings_to_dict(state.settings),
        "balance": state.balance,
        "peak_balance": state.peak_balance,
        "max_drawdown_pct": state.max_drawdown_pct,
        "open_position": state.position.to_dict() if state.position else None,
        "trades": [t.to_dict() for t in state.trades],
        "equity_curve": [
            {"timestamp": p.timestamp.isoformat(), "balance": p.balance} for p in state.equity_curve
        ],
        "window": [c.to_dict() for c in state.window],
        "last_timestamp": state.last_timestamp.isoformat() if state.last_timestamp else None,
        "bars_seen": state.bars_seen,
        "trading_bars": state.trading_bars,
        "exhausted": state.exhausted,
        "warnings": [w.to_dict() for w in state.warnings],
    }


def state_from_dict(data: Dict[str, Any]) -> EngineState:
    """Rebuild an EngineState. Raises StateError on a missing field or a bad value."""
    if data.get("version") != STATE_VERSION:
        raise StateError(f"unsupported state version {data.get('version')!r}")
    try:
        ledger = Ledger(
            balance=float(data["balance"]),
            peak_balance=float(data["peak_balance"]),
            max_drawdown_pct=float(data["max_drawdown_pct"]),
            trades=tuple(Trade.from_dict(t) for t in data["trades"]),
            equity_curve=tuple(
                EquityPoint(parse_timestamp(p["timestamp"]), float(p["balance"])) for p in data["equity_curve"]
            ),
        )
        pos = data.get("open_position")
        last = data.get("last_timestamp")
        return EngineState(
            params=StrategyParams.from_dict(data["params"]),
            settings=_settings_from_dict(data["settings"]),
            ledger=ledger,
            position=Position.from_dict(pos) if pos else None,
            window=tuple(Candle.from_dict(c) for c in data["window"]),
            last_timestamp=parse_timestamp(last) if last else None,
            bars_seen=int(data["bars_seen"]),
            trading_bars=int(data["trading_bars"]),
            exhausted=bool(data["exhausted"]),
            warnings=tuple(CandleWarning.from_dict(w) for w in data.get("warnings", [])),
        )
    except (KeyError, TypeError, ValueError, ConfigError) as e:
        raise StateError(f"corrupt engine state: {e}") from e


class StateStore:
    """Loads and saves EngineState at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(
        self,
        params: StrategyParams,
        settings: Optional[EngineSettings] = None,
    ) -> EngineState:
        """
        Stored state, or a fresh one if there is no file yet.
        Resuming with different strategy params, or with settings that differ from the
        stored ones when settings are given, raises StateError.
        """
        if not self.path.exists():
            logger.info("No state at %s, starting fresh", self.path)
            return new_state(params, settings)
        try:
            data = read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            raise StateError(f"cannot read state {self.path}: {e}") from e
        state = state_from_dict(data)
        if state.params != params:
            raise StateError(
                f"state at {self.path} was written with {state.params.label()}, not {params.label()}"
            )
        if settings is not None and state.settings != settings:
            raise StateError(
                f"state at {self.path} was written with settings {state.settings}, not {settings}; "
                "move the state file aside to start a new paper account"
            )
        return state

    def save(self, state: EngineState) -> None:
        write_json_atomic(self.path, state_to_dict(state))
