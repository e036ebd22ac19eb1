# drive/core/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from drive.core.exceptions import DriveError, NotAuthenticated

logger = logging.getLogger(__name__)


async def drive_error_handler(request: Request, error: DriveError) -> PlainTextResponse:
    if error.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, error.message)
    return PlainTextResponse(error.message, status_code=error.status_code)


async def request_validation_handler(
    request: Request, error: RequestValidationError
) -> PlainTextResponse:
    # malformed ids and form fields never reach the catalog
    return PlainTextResponse("Invalid request.", status_code=400)


async def not_authenticated_handler(request: Request, error: NotAuthenticated) -> RedirectResponse:
    return RedirectResponse(url="/login", status_code=302)


async def database_error_handler(request: Request, error: SQLAlchemyError) -> PlainTextResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return PlainTextResponse("An unexpected error occurred.", status_code=500)


async def unexpected_error_handler(request: Request, error: Exception) -> PlainTextResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return PlainTextResponse("An unexpected error occurred.", status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DriveError, drive_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(NotAuthenticated, not_authenticated_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
