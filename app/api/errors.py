# app/api/errors.py
import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.exceptions import SchedulingError

logger = logging.getLogger(__name__)


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """
    Render domain errors as `{success, error, message, reason}`.
    """
    if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.code,
            "message": exc.message,
            "reason": exc.reason,
        },
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Missing or malformed request fields are a client error (400), reported
    with the offending locations.
    """
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={
            "success": False,
            "error": "Missing or invalid fields",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
