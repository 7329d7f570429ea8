"""
Provider error classes.
"""


class ProviderError(Exception):
    """Base exception for provider adapter errors."""
    pass


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call or job exceeds its time budget."""
    pass


class ProviderConfigError(ProviderError):
    """Raised when a provider is selected but not usable with the current settings."""
    pass
