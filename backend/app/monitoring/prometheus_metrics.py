"""
Prometheus metrics module for the studio booking engine.

Service timings come from the @measure_operation decorator; the domain
counters below are incremented directly by the booking, override, voucher
and webhook services.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "studio_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "studio_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "studio_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_attempts_total = Counter(
    "studio_booking_attempts_total",
    "Booking attempts by outcome code",
    ["outcome"],  # booked | NO_ACTIVE_SUBSCRIPTION | SLOT_FULL_CONCURRENT | ...
    registry=REGISTRY,
)

booking_cancellations_total = Counter(
    "studio_booking_cancellations_total",
    "Cancellations by refund branch",
    ["refunded"],  # true | false
    registry=REGISTRY,
)

admin_overrides_total = Counter(
    "studio_admin_overrides_total",
    "Admin overrides applied",
    ["change_type"],
    registry=REGISTRY,
)

webhook_events_total = Counter(
    "studio_webhook_events_total",
    "Inbound webhook events by ledger outcome",
    ["provider", "outcome"],  # processed | duplicate | failed
    registry=REGISTRY,
)

voucher_redemptions_total = Counter(
    "studio_voucher_redemptions_total",
    "Gift voucher redemption attempts by outcome",
    ["outcome"],  # redeemed | NOT_FOUND | VOUCHER_NOT_ACTIVE | VOUCHER_EXPIRED
    registry=REGISTRY,
)

weekly_quota_rows_materialized_total = Counter(
    "studio_weekly_quota_rows_materialized_total",
    "Weekly usage rows touched by the reset sweep",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_booking_attempt(outcome: str) -> None:
        booking_attempts_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_cancellation(refunded: bool) -> None:
        booking_cancellations_total.labels(refunded=str(refunded).lower()).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_admin_override(change_type: str) -> None:
        admin_overrides_total.labels(change_type=change_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_webhook_event(provider: str, outcome: str) -> None:
        webhook_events_total.labels(provider=provider, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_voucher_redemption(outcome: str) -> None:
        voucher_redemptions_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_quota_rows_materialized(count: int) -> None:
        if count > 0:
            weekly_quota_rows_materialized_total.inc(count)
            PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format (cached briefly)."""
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts
        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            PrometheusMetrics._cache_ts = monotonic()
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        PrometheusMetrics._cache_payload = None
        PrometheusMetrics._cache_ts = None


prometheus_metrics = PrometheusMetrics()
