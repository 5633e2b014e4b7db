"""Custom exceptions for the ratekeeper application."""


class RateKeeperException(Exception):
    """Base class for ratekeeper exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code and error_code for consistent HTTP
    response handling.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API response format."""
        return {
            "error": self.error_code,
            "message": self.message,
        }


class RateLimitExceededError(RateKeeperException):
    """Raised when a client key has no tokens left.

    The client key is kept for logging and never echoed in the response.
    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, client_key: str | None = None, detail: str = "Too Many Requests"):
        self.client_key = client_key
        super().__init__(detail)
