"""Service exceptions and the HTTP status each one maps to."""


class WeatherscopeError(Exception):
    """Base exception for request failures."""

    status_code = 500
    error = "Server error"


class InvalidParameterError(WeatherscopeError):
    """Raised when a query parameter is missing or malformed."""

    status_code = 400

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error


class WeatherNotFoundError(WeatherscopeError):
    """Raised when the weather API has no data for a date and location."""

    status_code = 404
    error = "No data available"


class ResultNotFoundError(WeatherscopeError):
    """Raised when a shareable result is unknown or expired."""

    status_code = 404
    error = "Result not found"


class RateLimitExceededError(WeatherscopeError):
    """Raised when a client exhausts its request window."""

    status_code = 429
    error = "Too many requests"

    def __init__(self, message: str, headers: dict):
        super().__init__(message)
        self.headers = headers


class ExternalAPIError(WeatherscopeError):
    """Raised when an upstream API fails or returns an unusable payload."""

    status_code = 500

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error


class ServiceUnavailableError(WeatherscopeError):
    """Raised while the geocoder circuit is open and nothing is cached."""

    status_code = 503
    error = "Service unavailable"
