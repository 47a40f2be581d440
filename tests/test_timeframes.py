"""Unit tests for utils.timeframes."""

import pytest
from breakout_bot.utils.timeframes import bars_per_year, timeframe_minutes


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("4H") == 240
    assert timeframe_minutes("1d") == 1440
    assert timeframe_minutes("1w") == 10080


def test_timeframe_invalid():
    with pytest.raises(ValueError):
        timeframe_minutes("1x")
    with pytest.raises(ValueError):
        timeframe_minutes("h")


def test_bars_per_year():
    assert bars_per_year("1d") == 365.0
    assert bars_per_year("4h") == 365.0 * 6
