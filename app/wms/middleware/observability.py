from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.wms.core.db_timing import DbUsage, get_db_usage, start_db_timer, stop_db_timer
from app.wms.core.logging import log_json
from app.wms.core.metrics import metrics

logger = logging.getLogger("wms.request")


def _route_path(request: Request) -> str:
    scope_route = request.scope.get("route")
    if scope_route is not None:
        path = getattr(scope_route, "path", None)
        if path:
            return path
    return request.url.path


def build_request_log_payload(
    *,
    request: Request,
    response: Response | None,
    latency_ms: float,
    db_usage: DbUsage | None,
) -> dict:
    return {
        "event": "http_request",
        "trace_id": getattr(request.state, "trace_id", ""),
        "org_id": getattr(request.state, "org_id", None),
        "user_id": getattr(request.state, "user_id", None),
        "route": _route_path(request),
        "method": request.method,
        "status_code": getattr(response, "status_code", 500),
        "latency_ms": round(latency_ms, 2),
        "db_time_ms": round(db_usage.elapsed_ms, 2) if db_usage is not None else None,
        "db_statements": db_usage.statements if db_usage is not None else None,
        "error_code": getattr(request.state, "error_code", None),
        "error_class": getattr(request.state, "error_class", None),
    }


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        token = start_db_timer()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            db_usage = get_db_usage()
            stop_db_timer(token)
            payload = build_request_log_payload(
                request=request,
                response=response,
                latency_ms=latency_ms,
                db_usage=db_usage,
            )
            log_json(logger, payload)
            metrics.record_http_request(
                route=payload["route"],
                method=payload["method"],
                status_code=payload["status_code"],
                latency_ms=latency_ms,
            )
