"""Error taxonomy of the auth service and the codes the API exposes for it."""

from typing import Optional

from fastapi import status

# --- Códigos de error expuestos por la API ---
CODE_USER_NOT_FOUND = "USER_NOT_FOUND"
CODE_USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
CODE_INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
CODE_UNAUTHORIZED = "UNAUTHORIZED"
CODE_INTERNAL_SERVER = "INTERNAL_SERVER_ERROR"
CODE_VALIDATION_FAILED = "VALIDATION_FAILED"

MSG_INTERNAL_SERVER = "Internal server error"
MSG_VALIDATION_FAILED = "Validation failed"


class AuthServiceError(Exception):
    """
    Base class for every error raised by the service core.

    `expected` marks domain outcomes that are shown to the client as-is;
    the rest are infrastructure failures, logged and reported as a generic 500.
    """
    code = CODE_INTERNAL_SERVER
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = MSG_INTERNAL_SERVER
    expected = False

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


# --- Errores de dominio ---

class UserAlreadyExists(AuthServiceError):
    code = CODE_USER_ALREADY_EXISTS
    status_code = status.HTTP_409_CONFLICT
    message = "User already exists"
    expected = True


class InvalidCredentials(AuthServiceError):
    code = CODE_INVALID_CREDENTIALS
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"
    expected = True


class UserNotFound(AuthServiceError):
    code = CODE_USER_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"
    expected = True


class Unauthorized(AuthServiceError):
    code = CODE_UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized access"
    expected = True


class InvalidTokenError(Unauthorized):
    """Any structural, signature or temporal token failure. Never split by cause."""
    message = "Invalid or expired token"


# --- Errores de infraestructura ---

class HashingError(AuthServiceError):
    pass


class SigningError(AuthServiceError):
    pass


class StorageError(AuthServiceError):
    pass
