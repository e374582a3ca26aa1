"""
UniManage - HTTP Middleware
Request correlation, access logging, security headers and body size limits
"""

import time
from typing import Callable, Dict, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from app.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


# Health checks and docs are polled constantly; they still get a request id
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/favicon.ico",
    "/health",
    "/health/live",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
})

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def is_quiet(path: str) -> bool:
    return path in QUIET_PATHS or path.startswith("/uploads/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an X-Request-ID (the caller's, or a fresh one),
    times it and writes one access line through `logger.log_request`.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        started = time.perf_counter()
        method, path = request.method, request.url.path

        try:
            response = await call_next(request)
        except Exception:
            # The app's 500 handler logs the traceback
            logger.log_request(method, path, 500, (time.perf_counter() - started) * 1000)
            set_request_id("")
            set_user_id("")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"

        if not is_quiet(path) or response.status_code >= 500:
            logger.log_request(
                method,
                path,
                response.status_code,
                elapsed,
                client_ip=request.client.host if request.client else "unknown",
                slow=elapsed > SLOW_REQUEST_MS,
            )

        set_request_id("")
        set_user_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject bodies whose declared Content-Length is over `max_size`"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            limit_mb = self.max_size // (1024 * 1024)
            logger.warning(
                f"Rejected {declared}-byte body on {request.url.path} (limit {self.max_size})",
                extra={"event_type": "request_too_large", "http_path": request.url.path},
            )
            message = f"Request body too large. Maximum size is {limit_mb}MB"
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "message": message,
                    "error": {
                        "code": "PAYLOAD_TOO_LARGE",
                        "message": message,
                        "details": {"max_size": self.max_size},
                    },
                },
            )
        return await call_next(request)
