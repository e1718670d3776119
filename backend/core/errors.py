"""Error taxonomy shared by the services and the HTTP layer.

Every error is an ``HTTPException`` so services can raise it directly and
routers let it bubble up; ``main`` renders it as ``{"message", "error"}``.
"""
from typing import Optional, Dict

from fastapi import HTTPException, status


class ApiError(HTTPException):
    code: str = "error"
    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=message or self.message,
            headers=headers,
        )


class ConflictError(ApiError):
    code = "conflict"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "User already exists"


class InvalidCredentialsError(ApiError):
    code = "invalid_credentials"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "Invalid credentials"


class UnauthenticatedError(ApiError):
    code = "unauthenticated"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ApiError):
    code = "forbidden"
    status_code_default = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class NotFoundError(ApiError):
    code = "not_found"
    status_code_default = status.HTTP_404_NOT_FOUND
    message = "Not found"


class InvalidOrExpiredError(ApiError):
    code = "invalid_or_expired"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "Invalid or expired reset code"


class UnexpectedError(ApiError):
    code = "unexpected"


class BadRequestError(ApiError):
    code = "bad_request"
    status_code_default = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"
