"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission metrics
booking_attempts = Counter(
    'course_booking_attempts_total',
    'Course booking attempts by outcome',
    ['outcome']  # success, DuplicateBooking, InsufficientCredit, CourseFull, ...
)

admission_latency = Histogram(
    'course_admission_latency_seconds',
    'Time spent inside the admission check-and-commit unit',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0]
)

cancellations = Counter(
    'course_booking_cancellations_total',
    'Booking cancellations by outcome',
    ['outcome']  # success, BookingNotFound, AlreadyCancelled, ...
)

# Ledger metrics
credits_granted = Counter(
    'credits_granted_total',
    'Credits appended to the ledger'
)

credit_grants = Counter(
    'credit_grants_total',
    'Credit grant attempts by outcome',
    ['outcome']
)

# Store metrics
store_unavailable = Counter(
    'booking_store_unavailable_total',
    'Units of work aborted because the store was unavailable or timed out'
)

# Cache metrics
cache_operations = Counter(
    'usage_cache_operations_total',
    'Usage report cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    booking_attempts.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    cancellations.labels(outcome=outcome).inc()


def record_credit_grant(outcome: str, credits: int = 0):
    credit_grants.labels(outcome=outcome).inc()
    if credits > 0:
        credits_granted.inc(credits)


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
