"""
Load configuration from config.yaml and .env. Environment variables override the file.
"""

from __future__ import annotations
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from breakout_bot.core.exceptions import ConfigError
from breakout_bot.core.params import EngineSettings, StrategyParams, get_preset
from breakout_bot.core.types import parse_timestamp, to_utc
from breakout_bot.utils.timeframes import timeframe_minutes


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns a validated Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError("config_path", str(path), f"unreadable YAML: {e}") from e
    elif config_path is not None:
        raise ConfigError("config_path", str(path), "file not found")

    def env(key: str, default: Any) -> Any:
        value = os.getenv(key)
        return default if value is None or value.strip() == "" else value.strip()

    def env_int(key: str, default: Any) -> int:
        value = env(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(key, value, "must be an integer") from None

    def env_float(key: str, default: Any) -> float:
        value = env(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(key, value, "must be a number") from None

    strategy = data.get("strategy", {}) or {}
    backtest = data.get("backtest", {}) or {}
    paper = data.get("paper", {}) or {}
    sweep = data.get("sweep", {}) or {}
    logging_cfg = data.get("logging", {}) or {}

    # Preset first, then explicit overrides from the file and the environment
    base = get_preset(env("PRESET", strategy.get("preset", "breakout")))
    params = StrategyParams(
        lookback=env_int("LOOKBACK", strategy.get("lookback", base.lookback)),
        volume_multiplier=env_float("VOL_MULT", strategy.get("volume_multiplier", base.volume_multiplier)),
        stop_loss_pct=env_float("SL_PCT", strategy.get("stop_loss_pct", base.stop_loss_pct)),
        take_profit_pct=env_float("TP_PCT", strategy.get("take_profit_pct", base.take_profit_pct)),
        position_size_fraction=env_float("POS_SIZE", strategy.get("position_size_fraction", base.position_size_fraction)),
        leverage=env_float("LEVERAGE", strategy.get("leverage", base.leverage)),
        fee_rate_per_side=env_float("FEE_RATE", strategy.get("fee_rate_per_side", base.fee_rate_per_side)),
    )
    settings = EngineSettings(
        initial_balance=env_float("INITIAL_BALANCE", backtest.get("initial_balance", 10000.0)),
        balance_floor=env_float("BALANCE_FLOOR", backtest.get("balance_floor", 0.0)),
        equity_sample_every=env_int("EQUITY_SAMPLE_EVERY", backtest.get("equity_sample_every", 1)),
    )

    return Config(
        params=params,
        settings=settings,
        symbol=str(env("SYMBOL", strategy.get("symbol", "BTCUSDT"))).upper(),
        timeframe=_timeframe(env("TIMEFRAME", strategy.get("timeframe", "4h"))),
        data_file=_optional_path(env("DATA_FILE", backtest.get("data_file"))),
        backtest_start=_timestamp("start_date", backtest.get("start_date")),
        backtest_end=_timestamp("end_date", backtest.get("end_date")),
        warmup_bars=_int_field("warmup_bars", backtest.get("warmup_bars", 200), minimum=0),
        state_file=Path(env("STATE_FILE", paper.get("state_file", "data/breakout-state.json"))),
        candle_limit=_int_field("candle_limit", paper.get("candle_limit", 50), minimum=1),
        sweep_output=Path(sweep.get("output", "data/sweep-results.json")),
        sweep_workers=_int_field("workers", sweep.get("workers", 0), minimum=0) or None,
        sweep_grid=dict(sweep.get("grid", {}) or {}),
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "breakout_bot.log"),
    )


def _optional_path(value: Any) -> Optional[Path]:
    return Path(value) if value else None


def _timestamp(field: str, value: Any) -> Optional[datetime]:
    """YAML gives dates unquoted as date/datetime and quoted as str; all become UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return parse_timestamp(value.strip())
        except ValueError:
            raise ConfigError(field, value, "not an ISO date or datetime") from None
    raise ConfigError(field, value, "must be a date, datetime or ISO string")


def _int_field(field: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ConfigError(field, value, "must be an integer")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ConfigError(field, value, "must be an integer") from None
    if number < minimum:
        raise ConfigError(field, value, f"must be >= {minimum}")
    return number


def _timeframe(value: Any) -> str:
    tf = str(value).strip()
    try:
        minutes = timeframe_minutes(tf)
    except ValueError:
        raise ConfigError("timeframe", value, "expected e.g. 15m, 4h, 1d, 1w") from None
    if minutes <= 0:
        raise ConfigError("timeframe", value, "must be a positive interval")
    return tf


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "params", "settings", "symbol", "timeframe",
        "data_file", "backtest_start", "backtest_end", "warmup_bars",
        "state_file", "candle_limit",
        "sweep_output", "sweep_workers", "sweep_grid",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        params: Optional[StrategyParams] = None,
        settings: Optional[EngineSettings] = None,
        symbol: str = "BTCUSDT",
        timeframe: str = "4h",
        data_file: Optional[Path] = None,
        backtest_start: Optional[datetime] = None,
        backtest_end: Optional[datetime] = None,
        warmup_bars: int = 200,
        state_file: Path = None,
        candle_limit: int = 50,
        sweep_output: Path = None,
        sweep_workers: Optional[int] = None,
        sweep_grid: Optional[dict] = None,
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "breakout_bot.log",
    ):
        self.params = params or StrategyParams()
        self.settings = settings or EngineSettings()
        self.symbol = symbol
        self.timeframe = timeframe
        self.data_file = data_file
        self.backtest_start = backtest_start
        self.backtest_end = backtest_end
        self.warmup_bars = warmup_bars
        self.state_file = Path(state_file) if state_file else Path("data/breakout-state.json")
        self.candle_limit = candle_limit
        self.sweep_output = Path(sweep_output) if sweep_output else Path("data/sweep-results.json")
        self.sweep_workers = sweep_workers
        self.sweep_grid = sweep_grid or {}
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
