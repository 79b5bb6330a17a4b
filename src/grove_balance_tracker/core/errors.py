"""Exceptions raised by the balance tracker."""


class BalanceTrackerError(Exception):
    """Base exception for balance tracker errors."""


class NoAccountError(BalanceTrackerError):
    """Raised when a refresh is requested but no account is connected."""


class UnknownResourceTypeError(BalanceTrackerError, ValueError):
    """Raised for a balance type that no fetcher handles."""

    def __init__(self, resource_type: object) -> None:
        super().__init__(f"Unknown balance type: {resource_type}")
        self.resource_type = resource_type


class ConfigError(BalanceTrackerError):
    """Raised when settings cannot be loaded or fail validation."""
