"""
Domain errors for the course portal.

Services raise these; the application maps them onto HTTP responses.
"""

from fastapi import status


class PortalError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(PortalError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(PortalError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(PortalError):
    status_code = status.HTTP_409_CONFLICT


class Gone(PortalError):
    status_code = status.HTTP_410_GONE
