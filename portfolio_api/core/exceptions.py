"""
Domain errors raised by the services.

Each error carries the HTTP status and error code it maps to at the API
boundary, so services never build HTTP responses themselves.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_SERVER_ERROR"
    detail: str = "An internal error occurred. Please try again later."

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"
    detail = "Invalid request"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    detail = "Could not validate credentials"


class InvalidCredentials(Unauthorized):
    error_code = "INVALID_CREDENTIALS"
    detail = "Incorrect email or password"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    detail = "Not found"


class DuplicateUser(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE_USER"
    detail = "A user with this email already exists"


class InsufficientHoldings(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "INSUFFICIENT_HOLDINGS"

    def __init__(self, symbol: str, held, requested):
        self.symbol = symbol
        self.held = held
        self.requested = requested
        super().__init__(
            f"Insufficient holdings: want to sell {requested} {symbol}, have {held}"
        )


class ConcurrentUpdate(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONCURRENT_UPDATE"
    detail = "The holding was modified concurrently, please retry"


class UpstreamUnavailable(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_UNAVAILABLE"
    detail = "Market data provider unavailable"


class PriceUnavailable(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "PRICE_UNAVAILABLE"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No price available for {symbol}")
