"""Utils: timeframes, atomic JSON files."""

from breakout_bot.utils.io import read_json, write_json_atomic
from breakout_bot.utils.timeframes import bars_per_year, timeframe_minutes

__all__ = ["read_json", "write_json_atomic", "bars_per_year", "timeframe_minutes"]
