"""Per-IP rate limiting."""
import logging
import os
import time
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# Per-IP fixed window: (count, window_start). Max 120 requests per 60 seconds per IP by default.
_RATE_LIMIT_REQUESTS = int(os.environ.get("NODEOPT_RATE_LIMIT_REQUESTS", "120"))
_RATE_LIMIT_WINDOW_SEC = int(os.environ.get("NODEOPT_RATE_LIMIT_WINDOW_SEC", "60"))
_store: dict[str, tuple[int, float]] = defaultdict(lambda: (0, 0.0))


def _client_ip(request: Request) -> str:
    return (request.scope.get("client") and request.scope["client"][0]) or request.headers.get("x-forwarded-for", "").split(",")[0].strip() or "unknown"


def reset_rate_limits() -> None:
    _store.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-IP rate limit for /v1/ routes (health is exempt)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path == "/v1/health":
            return await call_next(request)
        if path.startswith("/v1/"):
            ip = _client_ip(request)
            now = time.time()
            count, start = _store[ip]
            if now - start >= _RATE_LIMIT_WINDOW_SEC:
                _store[ip] = (1, now)
            elif count >= _RATE_LIMIT_REQUESTS:
                logger.warning("rate limit exceeded", extra={"client_ip": ip, "path": path})
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests. Try again later."},
                    headers={"Retry-After": str(_RATE_LIMIT_WINDOW_SEC)},
                )
            else:
                _store[ip] = (count + 1, start)
        return await call_next(request)
