"""Feeds: candle sources for paper mode."""

from breakout_bot.feeds.base import CandleFeed
from breakout_bot.feeds.csv_feed import CsvCandleFeed

__all__ = ["CandleFeed", "CsvCandleFeed"]
