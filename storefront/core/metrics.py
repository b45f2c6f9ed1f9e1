from __future__ import annotations

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from storefront.core.config import settings


class _NoOpMetric:
    def labels(self, *args, **kwargs) -> "_NoOpMetric":
        return self

    def observe(self, *_, **__) -> None:
        return None

    def inc(self, *_, **__) -> None:
        return None


def _metric_or_noop(metric):
    return metric if settings.METRICS_ENABLED else _NoOpMetric()


REQUEST_LATENCY = _metric_or_noop(
    Histogram(
        f"{settings.METRICS_NAMESPACE}_http_request_duration_seconds",
        "HTTP request latency in seconds.",
        ["method", "path", "status_code"],
    )
)

REQUEST_ERRORS = _metric_or_noop(
    Counter(
        f"{settings.METRICS_NAMESPACE}_http_errors_total",
        "Total HTTP requests resulting in 4xx/5xx.",
        ["method", "path", "status_code"],
    )
)

CHECKOUT_OUTCOMES = _metric_or_noop(
    Counter(
        f"{settings.METRICS_NAMESPACE}_checkout_outcomes_total",
        "Checkout attempts partitioned by outcome.",
        ["outcome"],
    )
)


def normalize_path(request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return request.url.path


def record_request_metrics(request, status_code: int, elapsed: float) -> None:
    labels = (request.method, normalize_path(request), str(status_code))
    REQUEST_LATENCY.labels(*labels).observe(elapsed)
    if status_code >= 400:
        REQUEST_ERRORS.labels(*labels).inc()


def record_checkout_outcome(outcome: str) -> None:
    CHECKOUT_OUTCOMES.labels(outcome=outcome).inc()


def export_metrics() -> tuple[bytes, str]:
    if not settings.METRICS_ENABLED:
        return b"", "text/plain; charset=utf-8"
    return generate_latest(), CONTENT_TYPE_LATEST
