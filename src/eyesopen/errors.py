"""Custom exceptions used across EyesOpen."""

__all__ = ["EyesOpenError", "ConfigurationError", "SearchTimeoutError"]


class EyesOpenError(Exception):
    """Base class for every error raised by the comparison engine."""

    pass


class ConfigurationError(EyesOpenError, ValueError):
    """Raised when a comparison is constructed from invalid input."""

    pass


class SearchTimeoutError(EyesOpenError, TimeoutError):
    """Raised when the sliding-window search runs past its deadline."""

    def __init__(self, message: str, *, elapsed: float = 0.0, offsets_checked: int = 0) -> None:
        super().__init__(message)
        self.elapsed = elapsed
        self.offsets_checked = offsets_checked
