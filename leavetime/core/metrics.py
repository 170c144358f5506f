"""
Prometheus metrics instrumentation.
Counters and histograms for the API, detection and leave-time pipeline.
"""
from prometheus_client import Counter, Histogram, Gauge, Info
import time
from functools import wraps
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# API Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency',
    ['method', 'endpoint']
)

http_requests_in_progress = Gauge(
    'http_requests_in_progress',
    'HTTP requests currently in progress',
    ['method', 'endpoint']
)

# Detection Metrics
flights_detected_total = Counter(
    'flights_detected_total',
    'Flights detected from calendar events',
    ['detection_source']
)

events_scanned_total = Counter(
    'events_scanned_total',
    'Calendar events scanned for flights'
)

# Source Metrics
source_fetches_total = Counter(
    'source_fetches_total',
    'Flight source fetch attempts',
    ['source', 'status']
)

# Transport / Leave-time Metrics
eta_requests_total = Counter(
    'eta_requests_total',
    'Transport ETA lookups',
    ['mode', 'status']
)

eta_fallbacks_total = Counter(
    'eta_fallbacks_total',
    'ETA lookups answered by the distance estimate',
    ['mode']
)

leave_time_calculations_total = Counter(
    'leave_time_calculations_total',
    'Leave-time calculations',
    ['tier', 'estimated']
)

# Flight Sync Metrics
flight_sync_total = Counter(
    'flight_sync_total',
    'Total flight synchronizations',
    ['status']
)

flight_sync_duration_seconds = Histogram(
    'flight_sync_duration_seconds',
    'Flight sync duration'
)

# Application Info
app_info = Info('leavetime_backend', 'Application information')
app_info.info({
    'version': '1.0.0',
    'name': 'Leave-time Backend'
})


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.
    """

    async def dispatch(self, request: Request, call_next):
        method = request.method
        endpoint = request.url.path

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()

        try:
            response = await call_next(request)

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(time.time() - start_time)

            return response

        finally:
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def track_flight_sync():
    """
    Decorator to track flight sync metrics.
    A sync result dict with status "error" counts as a failed sync.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception:
                flight_sync_total.labels(status="error").inc()
                raise

            status = result.get("status", "success") if isinstance(result, dict) else "success"
            flight_sync_total.labels(status=status).inc()
            flight_sync_duration_seconds.observe(time.time() - start_time)
            return result

        return wrapper
    return decorator
