"""
Binance spot klines feed (public endpoint, no API keys) with rate-limit retry.
"""

from __future__ import annotations
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from binance.client import Client
from binance.exceptions import BinanceAPIException

from breakout_bot.core.types import Candle
from breakout_bot.feeds.base import CandleFeed

logger = logging.getLogger("breakout_bot.feeds.binance")


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


class BinanceKlineFeed(CandleFeed):
    """Closed klines from the Binance spot API. The client is created on first use."""

    def __init__(self, client: Optional[Client] = None, requests_timeout: float = 10.0):
        self._client = client
        self._requests_timeout = requests_timeout

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(requests_params={"timeout": self._requests_timeout})
        return self._client

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_candles(self, symbol: str, interval: str, limit: int = 50) -> List[Candle]:
        # One extra so the still-open kline can be dropped
        raw = self.client.get_klines(symbol=symbol, interval=interval, limit=limit + 1)
        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        candles = [
            Candle.from_ms(int(k[0]), k[1], k[2], k[3], k[4], k[5])
            for k in raw
            if int(k[6]) < now_ms
        ]
        return candles[-limit:]
