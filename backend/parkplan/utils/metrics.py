"""Prometheus metrics for trip planning and snapshot fetches."""

from prometheus_client import Counter, Histogram

from backend.parkplan.scheduling.engine import PlanMetrics

# Planning metrics
plan_latency_ms = Histogram(
    "plan_latency_ms",
    "Trip planning latency in milliseconds",
    ["outcome"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500],
)

unscheduled_rides_total = Counter(
    "unscheduled_rides_total",
    "Total wishlist rides left out of a plan",
    ["reason"],
)

estimated_curves_total = Counter(
    "estimated_curves_total",
    "Total wait curves substituted with a category median",
)

invariant_violations_total = Counter(
    "invariant_violations_total",
    "Total invariant violations found in produced plans",
    ["kind"],
)

# Snapshot fetch metrics
snapshot_latency_ms = Histogram(
    "snapshot_latency_ms",
    "Collaborator snapshot fetch latency in milliseconds",
    ["resource", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

snapshot_errors_total = Counter(
    "snapshot_errors_total",
    "Total collaborator snapshot fetch errors",
    ["resource", "reason"],
)


class PrometheusPlanMetrics(PlanMetrics):
    """Prometheus-based planning metrics implementation."""

    def record_latency(self, outcome: str, latency_ms: float) -> None:
        """Record end-to-end planning latency."""
        plan_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_unscheduled(self, reason: str, count: int = 1) -> None:
        """Count wishlist rides left out of a plan."""
        unscheduled_rides_total.labels(reason=reason).inc(count)

    def inc_estimated_curves(self, count: int = 1) -> None:
        """Count substituted wait curves."""
        estimated_curves_total.inc(count)

    def inc_invariant_violation(self, kind: str) -> None:
        """Count internal invariant violations."""
        invariant_violations_total.labels(kind=kind).inc()


class PrometheusSnapshotMetrics:
    """Prometheus-based snapshot fetch metrics implementation."""

    def record_latency(self, resource: str, outcome: str, latency_ms: float) -> None:
        snapshot_latency_ms.labels(resource=resource, outcome=outcome).observe(latency_ms)

    def inc_error(self, resource: str, reason: str) -> None:
        snapshot_errors_total.labels(resource=resource, reason=reason).inc()
