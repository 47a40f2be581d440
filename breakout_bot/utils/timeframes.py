"""Timeframe string conversions."""

def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '4h', '1d', '1w') to minutes."""
    tf = tf.strip().lower()
    try:
        if tf.endswith("m"):
            return int(tf[:-1])
        if tf.endswith("h"):
            return int(tf[:-1]) * 60
        if tf.endswith("d"):
            return int(tf[:-1]) * 60 * 24
        if tf.endswith("w"):
            return int(tf[:-1]) * 60 * 24 * 7
    except ValueError:
        pass
    raise ValueError(f"Unsupported timeframe: {tf}")


def bars_per_year(tf: str) -> float:
    """Number of bars of this timeframe in a 365-day year (crypto trades every day)."""
    return 365.0 * 24 * 60 / timeframe_minutes(tf)
