"""Request metrics labelled by route template."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.telemetry import observe_request

UNMATCHED_ROUTE = "unmatched"


def route_label(request: Request) -> str:
    """Label a request with the path template that served it.

    ``/api/recordings/session_123`` is reported as
    ``/api/recordings/{recording_id}`` and anything under the ``/uploads``
    mount as ``/uploads``, so recording ids and asset names never become
    label values. Requests no route matched share one label.
    """

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path

    mount_path = request.scope.get("root_path") or ""
    if mount_path:
        return mount_path
    return UNMATCHED_ROUTE


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Collect request metrics for Prometheus."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            observe_request(request.method, route_label(request), 500, time.perf_counter() - start_time)
            raise

        # The router fills in scope["route"] while handling the request.
        observe_request(
            request.method,
            route_label(request),
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response
