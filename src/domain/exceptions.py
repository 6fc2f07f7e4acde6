"""Domain exceptions for batch job processing."""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain errors."""
    pass


class InputPathError(DomainException):
    """Raised when an input path does not exist or cannot be used."""
    pass


class UploadError(DomainException):
    """Raised when an input file cannot be uploaded."""
    pass


class JobCreationError(DomainException):
    """Raised when the provider refuses to create a batch job."""
    pass


class ProviderError(DomainException):
    """Raised when a provider API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(DomainException):
    """Raised when configuration is invalid."""
    pass


class ProviderNotConfiguredError(ConfigurationError):
    """Raised when no API key is available for the provider."""
    pass
