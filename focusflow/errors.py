"""
Exception types for the FocusFlow timer core.
"""


class FocusFlowError(Exception):
    """Base exception for the timer core."""


class PersistenceError(FocusFlowError):
    """Raised when reading from or writing to the local store fails."""


class InvalidSettingError(FocusFlowError, ValueError):
    """Raised when a setting key is unknown or its value is out of range."""

    def __init__(self, key: str, value, message: str):
        super().__init__(f"{key}={value!r}: {message}")
        self.key = key
        self.value = value
