"""Exceptions raised by the detection core."""


class CriprofError(Exception):
    """Base class for criprof errors."""


class DetectionCancelled(CriprofError):
    """The detection run was cancelled before it could finish."""

    def __init__(self, message: str = "detection cancelled"):
        super().__init__(message)


class DeadlineExceeded(DetectionCancelled):
    """The detection run ran past its deadline."""

    def __init__(self, message: str = "detection deadline exceeded"):
        super().__init__(message)


class ConfigError(CriprofError):
    """Configuration could not be loaded or is invalid."""
