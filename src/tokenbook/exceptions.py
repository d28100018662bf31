"""Exception hierarchy for tokenbook."""

from typing import Any

DUPLICATE_MARKER = "already exists"


class TokenbookError(Exception):
    """Base exception for tokenbook errors."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TokenbookError):
    """Raised when a required field is missing before any network call."""


class ImportFormatError(TokenbookError):
    """Raised when an import file is not a JSON array of token records."""


class GatewayError(TokenbookError):
    """Raised when the token gateway reports a failure."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class AuthenticationError(GatewayError):
    """The credential was rejected; the session is over."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, 401)


class AuthorizationError(GatewayError):
    """The credential is valid but the role may not perform the call."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message, 403)


class TokenNotFoundError(GatewayError):
    def __init__(self, token_id: str) -> None:
        super().__init__(f"Token not found: {token_id}", 404)
        self.token_id = token_id


class DuplicateTokenError(GatewayError):
    """The gateway refused a create because the token already exists."""


def gateway_error_from_message(
    message: str, status_code: int | None = None
) -> GatewayError:
    """Build the right GatewayError subclass for a failure message."""
    if DUPLICATE_MARKER in message:
        return DuplicateTokenError(message, status_code)
    return GatewayError(message, status_code)
