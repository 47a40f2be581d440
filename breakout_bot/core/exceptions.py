"""
Exception hierarchy for the breakout engine.

DataError is recoverable per candle (the engine skips the bar and records a warning);
ConfigError and StateError are raised before any candle is processed.
"""


class BreakoutBotError(Exception):
    """Base exception for all breakout_bot errors."""

    pass


class ConfigError(BreakoutBotError):
    """Raised when strategy parameters or engine settings are invalid."""

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class DataError(BreakoutBotError):
    """Raised when a candle or a candle source is malformed."""

    pass


class StateError(BreakoutBotError):
    """Raised when persisted engine state cannot be restored."""

    pass
