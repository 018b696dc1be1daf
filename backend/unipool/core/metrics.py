"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'unipool_booking_attempts_total',
    'Total booking requests',
    ['status']  # success, insufficient_seats, unavailable, conflict
)

booking_transitions = Counter(
    'unipool_booking_transitions_total',
    'Booking status transitions applied',
    ['from_status', 'to_status']
)

booking_latency = Histogram(
    'unipool_booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Seat accounting
seat_clamps = Counter(
    'unipool_seat_adjustments_clamped_total',
    'Seat adjustments that had to be clamped into [0, seats_total]'
)

invariant_violations = Counter(
    'unipool_seat_invariant_violations_total',
    'Seat conservation violations detected'
)

cascade_rejections = Counter(
    'unipool_cascade_rejections_total',
    'Pending bookings processed by ride deactivation',
    ['result']  # rejected, skipped, failed
)

# Database metrics
db_operations = Counter(
    'unipool_db_operations_total',
    'Total database operations',
    ['operation']  # read, write, retry
)

# Cache metrics
cache_operations = Counter(
    'unipool_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# HTTP
request_latency = Histogram(
    'unipool_http_request_latency_seconds',
    'HTTP request latency',
    ['method', 'status_code'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, insufficient_seats, unavailable, conflict"""
    booking_attempts.labels(status=status).inc()


def record_transition(from_status: str, to_status: str):
    booking_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, retry"""
    db_operations.labels(operation=operation).inc()


def record_cascade(result: str):
    cascade_rejections.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
