import uuid
from time import perf_counter

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.logging import request_id_var

REQUEST_COUNT = Counter(
    "mailroom_http_requests_total",
    "HTTP requests handled",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "mailroom_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)

SLOTS_ALLOCATED = Counter(
    "mailroom_package_slots_allocated_total",
    "Package numbers handed out by the queue",
)
QUEUE_EXHAUSTED = Counter(
    "mailroom_package_queue_exhausted_total",
    "Allocation attempts that found no available package number",
)
SLOTS_RELEASED = Counter(
    "mailroom_package_slots_released_total",
    "Package number release calls",
    ["result"],
)
PACKAGE_TRANSITIONS = Counter(
    "mailroom_package_transitions_total",
    "Packages moved out of WAITING",
    ["status"],
)


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        request.state.request_id = request_id
        start = perf_counter()
        status = 500
        try:
            response: Response = await call_next(request)
            status = response.status_code
        finally:
            path = _route_path(request)
            REQUEST_COUNT.labels(request.method, path, str(status)).inc()
            REQUEST_LATENCY.labels(request.method, path).observe(
                perf_counter() - start
            )
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
