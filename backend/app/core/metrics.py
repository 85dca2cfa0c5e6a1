"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Ledger metrics
ledger_writes = Counter(
    'ledger_transactions_total',
    'Ledger transactions appended',
    ['kind']  # earn, redeem
)

redemption_attempts = Counter(
    'redemption_attempts_total',
    'Reward redemption attempts',
    ['result']  # success, insufficient, not_found, replayed
)

ledger_retries = Counter(
    'ledger_retry_attempts_total',
    'Ledger append retries due to account version conflicts'
)

ledger_latency = Histogram(
    'ledger_write_latency_seconds',
    'Ledger write latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Class booking attempts',
    ['status']  # success, conflict, error
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Render the default registry in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_ledger_write(kind: str):
    """Record an appended transaction. Kind: earn, redeem"""
    ledger_writes.labels(kind=kind).inc()


def record_redemption(result: str):
    """Result: success, insufficient, not_found, replayed"""
    redemption_attempts.labels(result=result).inc()


def record_ledger_retry():
    ledger_retries.inc()


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
