"""Structured request logging and in-process metrics."""
import logging
import time
import uuid
from collections import defaultdict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_LOG = logging.getLogger(__name__)

# In-process counters for /v1/metrics (reset on restart)
_request_total: dict[str, int] = defaultdict(int)
_request_duration_sec: list[float] = []
_plans_total: dict[str, int] = defaultdict(int)
_start_time = time.time()
_MAX_DURATION_SAMPLES = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Add request_id and log structured request/response with duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        path = request.url.path
        method = request.method
        start = time.time()
        response = await call_next(request)
        elapsed = time.time() - start
        _request_total[f"{method} {path}"] += 1
        _request_total["_total"] += 1
        _request_duration_sec.append(elapsed)
        if len(_request_duration_sec) > _MAX_DURATION_SAMPLES:
            _request_duration_sec[:] = _request_duration_sec[-_MAX_DURATION_SAMPLES:]
        _LOG.info(
            "request finished",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(elapsed * 1000, 2),
            },
        )
        response.headers["X-Request-ID"] = request_id
        return response


def record_plan(feasible: bool) -> None:
    """Count computed plans by outcome."""
    _plans_total["feasible" if feasible else "infeasible"] += 1


def get_metrics_text() -> str:
    """Prometheus-style text for GET /v1/metrics."""
    uptime = time.time() - _start_time
    lines = [
        "# HELP nodeopt_uptime_seconds Process uptime in seconds.",
        "# TYPE nodeopt_uptime_seconds gauge",
        f"nodeopt_uptime_seconds {uptime:.2f}",
        "# HELP nodeopt_http_requests_total Total HTTP requests by method and path.",
        "# TYPE nodeopt_http_requests_total counter",
    ]
    for key, count in sorted(_request_total.items()):
        if key == "_total":
            lines.append(f'nodeopt_http_requests_total{{aggregate="all"}} {count}')
        else:
            parts = key.split(" ", 1)
            method, path = (parts[0], parts[1]) if len(parts) == 2 else (key, "")
            path = path.replace('"', r"\"")
            lines.append(f'nodeopt_http_requests_total{{method="{method}",path="{path}"}} {count}')
    lines.extend([
        "# HELP nodeopt_plans_total Plans computed, by outcome.",
        "# TYPE nodeopt_plans_total counter",
    ])
    for outcome in ("feasible", "infeasible"):
        lines.append(f'nodeopt_plans_total{{outcome="{outcome}"}} {_plans_total[outcome]}')
    if _request_duration_sec:
        avg = sum(_request_duration_sec) / len(_request_duration_sec)
        lines.extend([
            "# HELP nodeopt_http_request_duration_seconds Recent request duration (avg).",
            "# TYPE nodeopt_http_request_duration_seconds gauge",
            f"nodeopt_http_request_duration_seconds {avg:.4f}",
        ])
    return "\n".join(lines) + "\n"
