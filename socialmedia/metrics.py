"""
Prometheus metrics for the social media API.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Account outcome counter (action, result)
- Message outcome counter (operation, result)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# action: register, login
# result: created, rejected, duplicate, matched, mismatch
account_requests_total = Counter(
    "account_requests_total",
    "Total account request outcomes",
    labelnames=["action", "result"]
)

# operation: create, get, list, list_by_account, update, delete
# result: ok, rejected, not_found
message_requests_total = Counter(
    "message_requests_total",
    "Total message request outcomes",
    labelnames=["operation", "result"]
)

# Using default buckets: .005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0, 7.5, 10.0
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float, route: str = None) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
        route: Matched route template (e.g. /messages/{message_id}), preferred
            over the raw path to keep label cardinality low
    """
    label_path = route or path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=label_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=label_path
    ).observe(latency_seconds)


def record_account_outcome(action: str, result: str) -> None:
    account_requests_total.labels(action=action, result=result).inc()


def record_message_outcome(operation: str, result: str) -> None:
    message_requests_total.labels(operation=operation, result=result).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
