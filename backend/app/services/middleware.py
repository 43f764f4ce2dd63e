"""Request middleware for the staffing analytics API."""
import time
import uuid
import logging
import collections
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.services.logging_config import request_id_var

logger = logging.getLogger("staffing-api.middleware")

SKIP_LOG_PATHS = {"/health"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    - Assigns an X-Request-ID (uuid4) to every request/response.
    - Adds X-Process-Time (ms) to every response.
    - Emits one structured log line per request (except /health).
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            logger.info(
                "request completed",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                },
            )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiter, per client IP.
    Buckets:
      - report generation (/api/analytics/...) : 30 req/min
      - settings writes (PUT)                  : 10 req/min
      - everything else                        : 120 req/min
    """
    WINDOW_S = 60

    def __init__(self, app):
        super().__init__(app)
        self._windows: dict = {}   # "ip:bucket" -> deque of request times
        self._last_sweep = 0.0

    @staticmethod
    def _bucket(method: str, path: str):
        if path.startswith("/api/analytics/"):
            return "report", 30
        if method == "PUT":
            return "settings-write", 10
        return "general", 120

    def _sweep(self, now: float) -> None:
        """Forget clients with no request inside the window."""
        stale = [key for key, window in self._windows.items() if not window or now - window[-1] > self.WINDOW_S]
        for key in stale:
            del self._windows[key]
        self._last_sweep = now

    def _admit(self, key: str, limit: int, now: float) -> bool:
        if now - self._last_sweep > self.WINDOW_S:
            self._sweep(now)
        window = self._windows.setdefault(key, collections.deque())
        while window and now - window[0] > self.WINDOW_S:
            window.popleft()
        if len(window) >= limit:
            return False
        window.append(now)
        return True

    async def dispatch(self, request: Request, call_next):
        ip = request.client.host if request.client else "unknown"
        name, limit = self._bucket(request.method, request.url.path)
        if not self._admit(f"{ip}:{name}", limit, time.monotonic()):
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please slow down."},
                headers={"Retry-After": str(self.WINDOW_S)},
            )
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response
