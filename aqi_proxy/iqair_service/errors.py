"""Error kinds raised by the IQAir extraction engine."""

from typing import Optional


class IQAirServiceError(Exception):
    """Base exception for IQAir service failures."""
    pass


class TransportError(IQAirServiceError):
    """Raised when a provider request fails or returns a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(IQAirServiceError):
    """Raised when an expected page structure cannot be located at all."""
    pass


class NotFoundError(IQAirServiceError):
    """Raised when a city name does not resolve to any provider record."""
    pass


class ValidationError(IQAirServiceError):
    """Raised on empty or out-of-range caller input."""
    pass
