from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration or credential environment is missing or invalid."""


class AuthError(RuntimeError):
    """Base class for token manager failures."""


class EmptyCredentialError(AuthError):
    """Raised when a blank token, refresh token or device id is passed to a setter."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Empty {field}")
        self.field = field


class MissingCredentialsError(AuthError):
    """Raised when a token is requested but neither credential mode is configured."""


class RefreshHttpStatusError(AuthError):
    """Raised when the token endpoint answers with a status other than 200."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"Unexpected HTTP status {status_code} during token refresh, body: {body}"
        )
        self.status_code = status_code
        self.body = body


class RefreshTransportError(AuthError):
    """Raised when the token endpoint cannot be reached."""


class RefreshParseError(AuthError):
    """Raised when a 200 token response is not JSON or lacks required fields."""


class ApiError(RuntimeError):
    """Base class for API call failures."""


class UnauthorizedError(ApiError):
    """Raised on HTTP 401."""


class ApiHttpStatusError(ApiError):
    """Raised on any other non-2xx status."""

    def __init__(self, status_code: int, endpoint: str) -> None:
        super().__init__(
            f"Unexpected HTTP status {status_code} when calling endpoint '{endpoint}'"
        )
        self.status_code = status_code
        self.endpoint = endpoint


class ApiRequestError(ApiError):
    """Raised when an API request fails at the transport level."""


class ApiParseError(ApiError):
    """Raised when a response body is not JSON or does not match the expected record."""
