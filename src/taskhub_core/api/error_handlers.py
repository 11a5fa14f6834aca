"""Global exception handlers producing the failure envelope.

Every failure is rendered as {"success": false, "error": <message>}:
- TaskHubError: its own status and message
- HTTPException (unknown route, bad method): its status and detail
- RequestValidationError: 400 with the field errors joined into one message,
  or 404 when only a path id is malformed
- SQLAlchemyError and any other Exception: 500, details logged, never leaked
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import FatalError, TaskHubError

logger = logging.getLogger("taskhub-core.errors")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_taskhub_error_handler(app)
    _register_http_error_handler(app)
    _register_validation_error_handler(app)
    _register_database_error_handler(app)
    _register_generic_error_handler(app)


def _register_taskhub_error_handler(app: FastAPI) -> None:

    @app.exception_handler(TaskHubError)
    async def taskhub_error_handler(request: Request, exc: TaskHubError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        else:
            logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message)


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown routes and disallowed methods
        return error_response(exc.status_code, str(exc.detail))


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        if exc.errors() and all(error.get("loc", ("",))[0] == "path" for error in exc.errors()):
            # A malformed id in the URL can never resolve to a resource
            return error_response(status.HTTP_404_NOT_FOUND, "Resource not found")
        return error_response(status.HTTP_400_BAD_REQUEST, _format_validation_errors(exc))


def _register_database_error_handler(app: FastAPI) -> None:

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.url.path}: {exc}", exc_info=exc)
        return _fatal_response()


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=exc)
        return _fatal_response()


def _format_validation_errors(exc: RequestValidationError) -> str:
    """Join pydantic errors as 'field: message' pairs."""
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg", "Invalid request"))
    return ", ".join(messages) or "Invalid request"


def _fatal_response() -> JSONResponse:
    """Internal failures share one opaque message; details stay in the log."""
    fatal = FatalError("Server Error")
    return error_response(fatal.status_code, fatal.message)
