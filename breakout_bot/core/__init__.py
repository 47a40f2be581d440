"""Core: config, params, types, errors, logging."""

from breakout_bot.core.config import load_config, Config
from breakout_bot.core.exceptions import BreakoutBotError, ConfigError, DataError, StateError
from breakout_bot.core.logger import setup_logging
from breakout_bot.core.params import EngineSettings, StrategyParams, PRESETS, get_preset
from breakout_bot.core.types import (
    Candle,
    CandleWarning,
    EquityPoint,
    ExitReason,
    Position,
    Side,
    Signal,
    Trade,
)
from breakout_bot.core.validation import validate_candle

__all__ = [
    "load_config",
    "Config",
    "BreakoutBotError",
    "ConfigError",
    "DataError",
    "StateError",
    "setup_logging",
    "EngineSettings",
    "StrategyParams",
    "PRESETS",
    "get_preset",
    "Candle",
    "CandleWarning",
    "EquityPoint",
    "ExitReason",
    "Position",
    "Side",
    "Signal",
    "Trade",
    "validate_candle",
]
