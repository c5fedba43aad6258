"""
    Centralized exception handling for the FastAPI application.

    Every error leaves the service in the same shape:
    {"success": false, "error": {"kind": "...", "message": "..."}}
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import logging

log = logging.getLogger(__name__)


class StartupError(Exception):
    """Raised when the service cannot reach a state where it may accept requests."""


class APIException(Exception):
    """Base class for API exceptions."""
    kind = "api_error"

    def __init__(self, status_code: int, message: str, kind: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        if kind:
            self.kind = kind
        super().__init__(self.message)


class NoFileException(APIException):
    """No file was sent under the upload field."""
    kind = "no_file"

    def __init__(self):
        super().__init__(status_code=400, message="No file uploaded")


class TooManyFilesException(APIException):
    """More than one file was sent under the upload field."""
    kind = "too_many_files"

    def __init__(self):
        super().__init__(status_code=400, message="Only one file may be uploaded per request")


class InvalidImageTypeException(APIException):
    """The declared MIME type is outside the whitelist."""
    kind = "invalid_type"

    def __init__(self, content_type: str = None):
        super().__init__(status_code=400, message="Only JPG, PNG, GIF, or WEBP images are allowed")
        self.content_type = content_type


class FileTooLargeException(APIException):
    kind = "file_too_large"

    def __init__(self, limit: int):
        super().__init__(status_code=400, message="File too large")
        self.limit = limit


class InvalidImageException(APIException):
    """Exception for files whose content is not the image they claim to be."""
    kind = "invalid_image"

    def __init__(self, message: str):
        super().__init__(status_code=400, message=message)


class StorageException(APIException):
    """Exception for disk write failures."""
    kind = "storage_error"

    def __init__(self, message: str = "Failed to store image"):
        super().__init__(status_code=500, message=message)


class PersistenceException(APIException):
    """Exception for metadata store failures. The message is safe to show to callers."""
    kind = "persistence_error"

    def __init__(self, message: str):
        super().__init__(status_code=500, message=message)


def error_body(kind: str, message: str) -> dict:
    return {"success": False, "error": {"kind": kind, "message": message}}


async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    if exc.status_code >= 500:
        log.error("API Exception: %s", exc.message, exc_info=exc)
    else:
        log.info("Rejected request: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handles Starlette HTTP exceptions (unknown routes, missing static files)."""
    log.debug("HTTP Exception: %s", exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors, reported as 400."""
    log.info("Invalid request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content=error_body("invalid_request", "Invalid request"),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error("Unhandled Exception: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body("internal_error", "Something went wrong"),
    )


def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
