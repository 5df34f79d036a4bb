"""Prometheus metrics collection for observability."""

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
)

# HTTP Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Lifecycle Operation Metrics
lifecycle_operations_total = Counter(
    "lifecycle_operations_total",
    "Total number of credential lifecycle operations",
    ["operation", "status"],
)

# Atlas API Metrics
atlas_api_calls_total = Counter(
    "atlas_api_calls_total",
    "Total number of Atlas Admin API calls",
    ["method", "status"],
)

atlas_api_call_duration_seconds = Histogram(
    "atlas_api_call_duration_seconds",
    "Atlas Admin API call duration in seconds",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

atlas_client_constructions_total = Counter(
    "atlas_client_constructions_total",
    "Total number of Atlas API client constructions",
    ["status"],
)

# Error Metrics
errors_total = Counter(
    "errors_total",
    "Total number of errors",
    ["error_code", "error_category"],
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        http_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_lifecycle_operation(operation: str, status: str):
        """Record a lifecycle operation outcome."""
        lifecycle_operations_total.labels(operation=operation, status=status).inc()

    @staticmethod
    def record_atlas_call(method: str, status: str, duration: float):
        """Record an Atlas Admin API call."""
        atlas_api_calls_total.labels(method=method, status=status).inc()
        atlas_api_call_duration_seconds.labels(method=method).observe(duration)

    @staticmethod
    def record_client_construction(status: str):
        """Record an Atlas client construction attempt."""
        atlas_client_constructions_total.labels(status=status).inc()

    @staticmethod
    def record_error(error_code: str, error_category: str):
        """Record error occurrence."""
        errors_total.labels(error_code=error_code, error_category=error_category).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest(REGISTRY)


# Global instance
metrics = MetricsCollector()
