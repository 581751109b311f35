"""
Maps domain errors to HTTP responses.

Every error body follows the ErrorResponse schema. Internal details and
stack traces never reach the client.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import AppError, NotFound, Unauthorized
from .logging_config import get_logger

logger = get_logger(__name__)


def _error_response(status_code: int, detail, error_code: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error_code": error_code},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.detail)
        else:
            logger.info("%s on %s", exc.error_code, request.url.path)

        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return _error_response(exc.status_code, exc.detail, exc.error_code, headers)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Raised by routing for unknown paths and methods
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return _error_response(exc.status_code, NotFound.detail, NotFound.error_code)
        return _error_response(exc.status_code, exc.detail, "HTTP_ERROR", getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in exc.errors()
        ]
        logger.info("VALIDATION_ERROR on %s", request.url.path, extra={'errors': jsonable_encoder(errors)})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Invalid request",
                "error_code": "VALIDATION_ERROR",
                "errors": jsonable_encoder(errors),
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler to prevent information leakage.
        Never expose internal errors to clients.
        """
        logger.exception("Unhandled exception on %s: %s", request.url.path, type(exc).__name__)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An internal error occurred. Please try again later.",
            "INTERNAL_SERVER_ERROR",
        )
