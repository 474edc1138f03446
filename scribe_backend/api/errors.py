"""Exception handlers that turn failures into JSON responses at the app boundary."""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from scribe_database.db import StoreConfigurationError

from .logger import get_logger

logger = get_logger("api.errors")

SETUP_HINT = "Visit /setup/fix-schema to create or update the database schema"

# SQLSTATE codes for undefined table / undefined column
SCHEMA_ERROR_CODES = {"42P01", "42703"}
SCHEMA_ERROR_MARKERS = ("no such table", "no such column", "does not exist")


def store_error_code(exc):
    """SQLSTATE (or driver code) carried by a SQLAlchemy error, if any."""
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate", "sqlite_errorname"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return getattr(exc, "code", None)


def is_schema_error(exc):
    if store_error_code(exc) in SCHEMA_ERROR_CODES:
        return True
    message = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in message for marker in SCHEMA_ERROR_MARKERS)


def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    content = {
        "detail": "Database error",
        "code": store_error_code(exc),
        "message": str(getattr(exc, "orig", None) or exc),
    }
    if is_schema_error(exc):
        content["detail"] = "Database schema is missing or out of date"
        content["solution"] = SETUP_HINT
    return JSONResponse(status_code=500, content=content)


def store_configuration_handler(request: Request, exc: StoreConfigurationError):
    logger.error("Store not configured: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Server configuration error", "message": str(exc)},
    )


def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app):
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(StoreConfigurationError, store_configuration_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
