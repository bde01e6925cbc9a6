# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Error taxonomy and the FastAPI exception handlers that render it.

Two layers
----------
* Component errors (cipher, token, hash) are narrow and never carry HTTP
  semantics.  Callers translate them.
* ``ServiceError`` subclasses map 1:1 onto a status code.  Handlers raise
  them; ``register_exception_handlers`` turns them into ``{"error": ...}``.

Error bodies carry a short reason string only.  Stack traces, key material
and driver messages go to the server log and nowhere else.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.logger import logger


# -- Component errors ------------------------------------------------------


class CipherError(Exception):
    """Base class for field-cipher failures."""


class InvalidKey(CipherError):
    """Encryption key is not exactly 32 bytes."""


class MalformedCiphertext(CipherError):
    """Token is not base64, or too short to hold a nonce and tag."""


class DecryptionFailed(CipherError):
    """Authentication tag mismatch: wrong key or tampered token."""


class TokenError(Exception):
    """Base class for session-token verification failures."""


class TokenExpired(TokenError):
    pass


class TokenInvalid(TokenError):
    pass


class HashError(Exception):
    """Stored password hash is not in a recognised format."""


# -- Service errors --------------------------------------------------------


class ServiceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason = "Internal server error"

    def __init__(self, reason: str | None = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class BadRequest(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "Invalid request payload"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "Unauthorized"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "Forbidden"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "Not found"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    reason = "Conflict"


class Internal(ServiceError):
    pass


# -- Handlers --------------------------------------------------------------


def _error(status_code: int, reason: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": reason}, headers=headers)


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return _error(exc.status_code, exc.reason, headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, BadRequest.reason)


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc.__class__.__name__)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, Internal.reason)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, Internal.reason)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
