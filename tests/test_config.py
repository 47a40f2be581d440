"""Unit tests for core.params and core.config, and config handling in the CLI."""

import logging
import sys
from datetime import datetime, timezone

import pytest
import main
from breakout_bot.core.config import load_config
from breakout_bot.core.exceptions import BreakoutBotError, ConfigError
from breakout_bot.core.params import FEE_LIVE, PRESETS, EngineSettings, StrategyParams, get_preset
from breakout_bot.data.loader import candles_to_dataframe

from synthetic import bar, breakout_long

ENV_KEYS = (
    "PRESET", "LOOKBACK", "VOL_MULT", "SL_PCT", "TP_PCT", "POS_SIZE", "LEVERAGE", "FEE_RATE",
    "INITIAL_BALANCE", "BALANCE_FLOOR", "EQUITY_SAMPLE_EVERY", "SYMBOL", "TIMEFRAME",
    "DATA_FILE", "STATE_FILE", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        # set first so the deletion is undone after the test
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.parametrize("kwargs", [
    {"lookback": 0},
    {"lookback": 2.5},
    {"volume_multiplier": -1.0},
    {"stop_loss_pct": 0.0},
    {"stop_loss_pct": 1.0},
    {"take_profit_pct": 0.0},
    {"position_size_fraction": 0.0},
    {"position_size_fraction": 1.5},
    {"leverage": 0.5},
    {"fee_rate_per_side": -0.001},
    {"leverage": float("nan")},
])
def test_invalid_params_rejected(kwargs):
    with pytest.raises(ConfigError) as exc:
        StrategyParams(**kwargs)
    assert exc.value.field == next(iter(kwargs))


def test_config_error_is_breakout_error():
    with pytest.raises(BreakoutBotError, match="Invalid lookback=0"):
        StrategyParams(lookback=0)


def test_invalid_settings_rejected():
    with pytest.raises(ConfigError):
        EngineSettings(initial_balance=0.0)
    with pytest.raises(ConfigError):
        EngineSettings(initial_balance=100.0, balance_floor=100.0)
    with pytest.raises(ConfigError):
        EngineSettings(equity_sample_every=0)


def test_window_size_defaults_to_lookback_plus_one():
    assert EngineSettings().window_size(StrategyParams(lookback=20)) == 21
    assert EngineSettings(history_size=50).window_size(StrategyParams(lookback=20)) == 50


def test_presets():
    assert get_preset("breakout") == StrategyParams()
    assert get_preset("breakout_live").fee_rate_per_side == FEE_LIVE
    assert set(PRESETS) >= {"breakout", "breakout_tight_stop", "breakout_loose_volume", "breakout_wide"}
    with pytest.raises(ConfigError):
        get_preset("nope")


def test_params_dict_round_trip():
    params = StrategyParams(lookback=15, leverage=3.0)
    assert StrategyParams.from_dict(params.to_dict()) == params


def test_load_config_defaults_without_file(tmp_path):
    config = load_config(None, tmp_path)
    assert config.params == StrategyParams()
    assert config.settings == EngineSettings()
    assert config.symbol == "BTCUSDT"
    assert config.timeframe == "4h"
    assert config.sweep_grid == {}


def test_load_config_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml", tmp_path)


def test_load_config_from_yaml(tmp_path):
    path = _write(tmp_path, """
strategy:
  preset: breakout_wide
  stop_loss_pct: 0.02
  symbol: ethusdt
backtest:
  initial_balance: 5000
  balance_floor: 100
sweep:
  workers: 2
  grid:
    lookback: [10, 20]
""")
    config = load_config(path, tmp_path)
    assert config.params.lookback == 15
    assert config.params.take_profit_pct == 0.08
    assert config.params.stop_loss_pct == 0.02
    assert config.symbol == "ETHUSDT"
    assert config.settings.initial_balance == 5000.0
    assert config.settings.balance_floor == 100.0
    assert config.sweep_workers == 2
    assert config.sweep_grid == {"lookback": [10, 20]}


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = _write(tmp_path, "strategy:\n  lookback: 12\n  leverage: 3\n")
    monkeypatch.setenv("LOOKBACK", "25")
    monkeypatch.setenv("FEE_RATE", "0.0004")
    config = load_config(path, tmp_path)
    assert config.params.lookback == 25
    assert config.params.leverage == 3.0
    assert config.params.fee_rate_per_side == 0.0004


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text("VOL_MULT=3.5\n", encoding="utf-8")
    config = load_config(None, tmp_path)
    assert config.params.volume_multiplier == 3.5


def test_bad_env_value(tmp_path, monkeypatch):
    monkeypatch.setenv("LOOKBACK", "ten")
    with pytest.raises(ConfigError) as exc:
        load_config(None, tmp_path)
    assert exc.value.field == "LOOKBACK"


def test_invalid_yaml_value(tmp_path):
    path = _write(tmp_path, "strategy:\n  stop_loss_pct: 1.5\n")
    with pytest.raises(ConfigError) as exc:
        load_config(path, tmp_path)
    assert exc.value.field == "stop_loss_pct"


def test_unquoted_yaml_dates_become_utc_datetimes(tmp_path):
    path = _write(tmp_path, "backtest:\n  start_date: 2024-01-01\n  end_date: 2024-02-01 12:00:00\n")
    config = load_config(path, tmp_path)
    assert config.backtest_start == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert config.backtest_end == datetime(2024, 2, 1, 12, tzinfo=timezone.utc)


def test_quoted_dates_are_parsed(tmp_path):
    path = _write(tmp_path, "backtest:\n  start_date: '2024-03-05'\n  end_date: null\n")
    config = load_config(path, tmp_path)
    assert config.backtest_start == datetime(2024, 3, 5, tzinfo=timezone.utc)
    assert config.backtest_end is None


@pytest.mark.parametrize("text, field", [
    ("backtest:\n  start_date: 'first of may'\n", "start_date"),
    ("backtest:\n  end_date: 20240101\n", "end_date"),
    ("strategy:\n  timeframe: 4x\n", "timeframe"),
    ("strategy:\n  timeframe: 0m\n", "timeframe"),
    ("backtest:\n  warmup_bars: lots\n", "warmup_bars"),
    ("backtest:\n  warmup_bars: -1\n", "warmup_bars"),
    ("paper:\n  candle_limit: 0\n", "candle_limit"),
    ("sweep:\n  workers: 2.5\n", "workers"),
])
def test_invalid_cli_settings_raise_config_error(tmp_path, text, field):
    with pytest.raises(ConfigError) as exc:
        load_config(_write(tmp_path, text), tmp_path)
    assert exc.value.field == field


def test_bad_timeframe_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TIMEFRAME", "fortnight")
    with pytest.raises(ConfigError) as exc:
        load_config(None, tmp_path)
    assert exc.value.field == "timeframe"


def _cli_config(tmp_path, extra=""):
    data = tmp_path / "candles.csv"
    candles = breakout_long() + [bar(11, 105.0, 112.0, 104.0, 111.0, 10.0)]
    candles_to_dataframe(candles).to_csv(data, index=False)
    return _write(tmp_path, (
        f"backtest:\n  data_file: {data.as_posix()}\n  start_date: 2024-01-01\n"
        f"logging:\n  log_dir: {(tmp_path / 'logs').as_posix()}\n" + extra
    ))


@pytest.fixture
def reset_logger():
    yield
    root = logging.getLogger("breakout_bot")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


def test_cli_backtest_accepts_unquoted_date(tmp_path, monkeypatch, reset_logger):
    monkeypatch.setattr(sys, "argv", ["main.py", "backtest", "--config", str(_cli_config(tmp_path))])
    assert main.main() == 0


def test_cli_reports_config_error_instead_of_crashing(tmp_path, monkeypatch, reset_logger):
    path = _cli_config(tmp_path, "strategy:\n  timeframe: 4x\n")
    monkeypatch.setattr(sys, "argv", ["main.py", "paper", "--config", str(path)])
    assert main.main() == 1
