"""Custom exception classes for the FootballZone API."""

from fastapi import status


class FootballZoneError(Exception):
    """Base exception for FootballZone. Carries the HTTP status it maps to."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(FootballZoneError):
    """Raised when input is malformed or missing."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(FootballZoneError):
    """Raised when a credential is missing, invalid or expired."""
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(FootballZoneError):
    """Raised when a valid identity lacks the role or ownership required."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(FootballZoneError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(FootballZoneError):
    """Raised when a uniqueness constraint would be violated."""
    status_code = status.HTTP_409_CONFLICT


class AccountLockedError(FootballZoneError):
    """Raised when login is attempted on a temporarily locked account."""
    status_code = status.HTTP_423_LOCKED


class DependencyError(FootballZoneError):
    """Raised when a downstream store or library fails."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ---- Credential layer ----

class HashingError(DependencyError):
    """Raised when the password hashing primitive fails."""
    pass


class VerificationError(DependencyError):
    """Raised when a stored password hash cannot be parsed."""
    pass


# ---- Token layer ----

class TokenError(AuthenticationError):
    """Base class for token verification failures."""
    pass


class TokenExpired(TokenError):
    """Token signature is valid but the token is past its expiry."""
    pass


class TokenInvalid(TokenError):
    """Signature, issuer, audience or token type does not match."""
    pass


class TokenMalformed(TokenError):
    """Token is structurally broken (not a JWT at all)."""
    pass
