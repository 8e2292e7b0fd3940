"""
Custom Exceptions

Centralized exception definitions for better error handling.
FastAPI automatically converts these to appropriate HTTP responses; the core
services raise them directly so callers always get a typed failure with a
human-readable detail.
"""
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Raised when a lookup (arcade, binding, allow-list entry) fails."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )


class ArcadeNotFoundError(NotFoundError):
    """Raised when a query resolves to no arcade."""

    def __init__(self, query: str = ""):
        super().__init__(
            detail=f"Arcade not found: {query}" if query else "Arcade not found"
        )


class InvalidInputError(HTTPException):
    """Raised when input validation fails."""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class PermissionDenied(HTTPException):
    """Raised when an authorization gate fails."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class ConflictError(HTTPException):
    """Raised on duplicate arcade names or duplicate allow-list entries."""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class ConfirmationMismatchError(HTTPException):
    """Raised when the tenant reset confirmation phrase is wrong."""

    def __init__(self, expected: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Confirmation text does not match, send "{expected}" to confirm'
        )


class UpstreamUnavailableError(HTTPException):
    """Raised when the record store or the platform directory fails."""

    def __init__(self, detail: str = "Upstream service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail
        )


class AuthenticationError(HTTPException):
    """Raised when the gateway token is missing or invalid."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class TenantIsolationError(HTTPException):
    """
    Raised when a token's group does not match the requested tenant.

    This is a security error and is logged as such.
    """

    def __init__(self, detail: str = "Tenant isolation violation"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )
