r"""backend\app\core\observability.py"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

ACCESS_LOGGER = logging.getLogger("backend.access")

_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)

FORECAST_OUTCOMES = Counter(
    "stock_forecasts_total",
    "Stock forecasts by outcome",
    ["outcome"],
)
GENERATION_LATENCY = Histogram(
    "generation_call_latency_seconds",
    "Latency of structured-generation calls",
    ["schema"],
)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class RateLimitAndMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing per-client rate limits, access logging, and Prometheus metrics."""

    _exempt_prefixes: tuple[str, ...] = (
        "/api/v1/health",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    def __init__(self, app: ASGIApp, per_minute: int = 60) -> None:
        super().__init__(app)
        self._per_minute = per_minute
        self._lock = threading.Lock()
        self._buckets: dict[str, deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)
            # Route templates keep product and order ids out of the label set.
            route = getattr(request.scope.get("route"), "path", path)

            try:
                _REQUEST_COUNTER.labels(method, route, str(status_code)).inc()
                _LATENCY_HISTOGRAM.labels(method, route).observe(latency)
            except Exception:
                # Metrics errors should never break request handling.
                ACCESS_LOGGER.debug("Failed to record metrics for %s %s", method, path)

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "uid": getattr(request.state, "uid", None),
            }
            ACCESS_LOGGER.info(json.dumps(log_payload))
            response.headers["x-request-id"] = request_id
            return response

        # Rate limiting per client IP
        if self._per_minute > 0 and not path.startswith(self._exempt_prefixes):
            now = time.time()
            with self._lock:
                window = self._buckets[client_ip]
                while window and now - window[0] > 60.0:
                    window.popleft()
                if len(window) >= self._per_minute:
                    error_response = PlainTextResponse("Too Many Requests", status_code=429)
                    return _finalize(error_response)
                window.append(now)

        try:
            response = await call_next(request)
        except Exception:
            # Even if downstream fails we still want metrics/logs; re-raise after logging.
            _finalize(PlainTextResponse("Internal Server Error", status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
