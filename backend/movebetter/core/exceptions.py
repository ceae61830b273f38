"""
Exception handlers: every error response body is ``{"error": "<message>"}``.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..datastore.errors import BackendError, ErrorCode

logger = logging.getLogger(__name__)

BACKEND_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNIQUE_VIOLATION: status.HTTP_409_CONFLICT,
    ErrorCode.FOREIGN_KEY_VIOLATION: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_NULL_VIOLATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RULE_VIOLATION: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"] if loc != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    logger.warning("Validation error on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Dados inválidos", "details": errors},
    )


async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    status_code = BACKEND_STATUS.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("Datastore error on %s %s: %r (%s)", request.method, request.url.path, exc, exc.details)
        message = "Erro interno do servidor"
    else:
        logger.info("Rejected %s %s: %r", request.method, request.url.path, exc)
        message = exc.message
    return JSONResponse(status_code=status_code, content={"error": message, "code": exc.code.value})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Erro interno do servidor"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(BackendError, backend_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
