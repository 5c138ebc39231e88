"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, invalid, not_found, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking transaction latency (commit included, enrichment excluded)',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

seats_claimed = Counter(
    'seats_claimed_total',
    'Seats flipped to booked by committed bookings'
)

booking_reference_collisions = Counter(
    'booking_reference_collisions_total',
    'Booking reference unique violations that forced a regeneration'
)

# Post-commit enrichment
ticket_artifacts = Counter(
    'ticket_artifacts_total',
    'Ticket artifact generation outcomes',
    ['result']  # generated, failed, store_failed
)

seat_notifications = Counter(
    'seat_notifications_total',
    'Seat change deliveries to watchers',
    ['result']  # delivered, dropped
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, invalid, not_found, error"""
    booking_attempts.labels(status=status).inc()


def record_ticket_artifact(result: str):
    ticket_artifacts.labels(result=result).inc()


def record_notification(delivered: int, dropped: int):
    if delivered:
        seat_notifications.labels(result="delivered").inc(delivered)
    if dropped:
        seat_notifications.labels(result="dropped").inc(dropped)


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
