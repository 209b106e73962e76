"""Custom exceptions for gmail-size-stats."""


class GmailSizeStatsError(Exception):
    """Base exception for all gmail-size-stats errors."""


class GmailAPIError(GmailSizeStatsError):
    """Exception raised for Gmail API related errors."""


class StoreError(GmailSizeStatsError):
    """Exception raised when a MongoDB read or write fails."""


class ConfigurationError(GmailSizeStatsError):
    """Exception raised for configuration related errors."""


class AuthenticationError(GmailSizeStatsError):
    """Exception raised for authentication failures."""


class ValidationError(GmailSizeStatsError):
    """Exception raised for data validation errors."""


class InvalidConcurrencyError(ValidationError):
    """Exception raised when the worker count is outside the accepted range."""
