"""Custom exceptions for the keyauth client."""


class KeyauthException(Exception):
    """Base class for keyauth client exceptions.

    All custom exceptions should inherit from this class so callers can
    catch every client failure with a single ``except`` clause.
    """

    def __init__(self, message: str = "Keyauth client error"):
        self.message = message
        super().__init__(message)


class TransportError(KeyauthException):
    """Raised when the HTTP call itself fails.

    Covers network errors, timeouts, status codes outside the deliverable
    whitelist and bodies that cannot be decoded. An application-level
    ``success: false`` answer is never a TransportError.
    """

    def __init__(
        self,
        message: str = "Transport failure",
        status_code: int | None = None,
        endpoint: str | None = None,
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RateLimitError(KeyauthException):
    """Raised when a token is consumed from an empty bucket."""

    def __init__(self, detail: str = "No rate limit token available"):
        super().__init__(detail)


class ConfigurationError(KeyauthException):
    """Raised when client options are invalid."""

    def __init__(self, detail: str = "Invalid client configuration"):
        self.detail = detail
        super().__init__(detail)
