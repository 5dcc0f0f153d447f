"""Error taxonomy shared by repositories, services and the HTTP layer.

Each error carries the HTTP status it maps to; ``main.py`` turns them into
``{"success": false, "message": ...}`` responses.
"""
from fastapi import status


class StorefrontError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class UserExists(ValidationError):
    def __init__(self, message: str = "User already exists"):
        super().__init__(message)


class AuthError(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class ForbiddenError(AuthError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamUnavailable(StorefrontError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ConnectivityError(UpstreamUnavailable):
    """Raised by the data-access layer when the transport itself failed
    (server selection timeout, refused connection, network timeout)."""


class GatewayError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
