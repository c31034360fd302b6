"""Error taxonomy shared by the registry, ownership engine and telemetry gateway.

Every error carries the HTTP status it maps to so the API layer can translate
it without knowing which service raised it.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class SafeBoxError(Exception):
    """Base class for domain errors."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SafeBoxError):
    """Referenced box, code or request does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(SafeBoxError):
    """Valid target, but the requested state transition is not allowed."""
    status_code = status.HTTP_409_CONFLICT


class AlreadyClaimedError(ConflictError):
    """The claim code was already redeemed."""
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(SafeBoxError):
    """Authenticated, but not allowed for this role/ownership combination."""
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(SafeBoxError):
    """Malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST


class UnavailableError(SafeBoxError):
    """A downstream store could not be reached."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def safe_box_error_handler(request: Request, exc: SafeBoxError) -> JSONResponse:
    """Render a domain error as the standard JSON error body."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
