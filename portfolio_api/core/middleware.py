import re
import time
import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import bind_log_context, get_logger, reset_log_context

logger = get_logger(__name__)

UNLIMITED_PATHS = {"/health", "/docs", "/openapi.json"}
REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """JSON-only API: forbid framing, sniffing, caching and any active content."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limit of `calls` requests per `period` seconds per client IP.

    State lives in this process only. Clients idle for a whole window are
    dropped once per window so the table tracks active clients only.
    """

    def __init__(self, app, calls: int = 60, period: int = 60):
        super().__init__(app)
        self.calls = calls
        self.window = timedelta(seconds=period)
        self.period = period
        self.clients: Dict[str, List[datetime]] = defaultdict(list)
        self._last_sweep = datetime.now()

    def _sweep(self, now: datetime) -> None:
        """Forget clients with no request inside the current window."""
        idle = [ip for ip, times in self.clients.items() if not times or now - times[-1] >= self.window]
        for ip in idle:
            del self.clients[ip]
        self._last_sweep = now

    def _recent(self, client_ip: str, now: datetime) -> List[datetime]:
        recent = [t for t in self.clients[client_ip] if now - t < self.window]
        self.clients[client_ip] = recent
        return recent

    def _rejected(self, client_ip: str, path: str) -> JSONResponse:
        logger.warning("Rate limit exceeded", extra={'client_ip': client_ip, 'path': path})
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "detail": f"Rate limit exceeded. Maximum {self.calls} requests per {self.period} seconds.",
                "error_code": "RATE_LIMIT_EXCEEDED",
            },
            headers={"Retry-After": str(self.period)},
        )

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        now = datetime.now()
        if now - self._last_sweep >= self.window:
            self._sweep(now)

        client_ip = _client_ip(request)
        recent = self._recent(client_ip, now)
        if len(recent) >= self.calls:
            return self._rejected(client_ip, request.url.path)
        recent.append(now)

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.calls)
        response.headers["X-RateLimit-Remaining"] = str(self.calls - len(recent))
        response.headers["X-RateLimit-Reset"] = str(int((now + self.window).timestamp()))
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a request id, echoed in `X-Request-ID` and bound to
    the log context, then log method, path, status and duration.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get(REQUEST_ID_HEADER, "")
        if not _REQUEST_ID_PATTERN.match(request_id):
            request_id = uuid.uuid4().hex

        token = bind_log_context(request_id=request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 1)

            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Process-Time"] = f"{duration_ms / 1000:.4f}"
            logger.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
                extra={'client_ip': _client_ip(request), 'duration_ms': duration_ms},
            )
            return response
        finally:
            reset_log_context(token)
