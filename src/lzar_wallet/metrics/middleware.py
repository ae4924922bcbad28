"""Prometheus HTTP request metrics middleware.

Tracks:
- ``http_request_total`` (counter): requests by method, route, status
- ``http_request_duration_seconds`` (histogram): duration by method, route

The ``path`` label is the route template (``/api/v1/charges/{charge_id}``),
never the concrete URL, so ids do not create new series. Requests that
match no route share one ``<unmatched>`` label. Scrapes of ``/metrics``
are not counted.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Callable

    from prometheus_client import CollectorRegistry
    from starlette.requests import Request
    from starlette.responses import Response

APP_LABEL = "lzar-wallet"
UNMATCHED_PATH = "<unmatched>"

_SKIP_PATHS = frozenset({"/metrics"})
_LABELS = ("method", "path", "status_code", "app")
_DURATION_LABELS = ("method", "path", "app")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records request count and duration per route template."""

    def __init__(self, app: object, *, registry: CollectorRegistry) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._request_count = Counter(
            "http_request_total",
            "Total HTTP requests",
            _LABELS,
            registry=registry,
        )
        self._request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            _DURATION_LABELS,
            registry=registry,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[type-arg]
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start = time.monotonic()
        response: Response = await call_next(request)
        duration = time.monotonic() - start

        route = request.scope.get("route")
        path = getattr(route, "path", None) or UNMATCHED_PATH

        self._request_count.labels(
            method=request.method,
            path=path,
            status_code=str(response.status_code),
            app=APP_LABEL,
        ).inc()
        self._request_duration.labels(
            method=request.method,
            path=path,
            app=APP_LABEL,
        ).observe(duration)
        return response
