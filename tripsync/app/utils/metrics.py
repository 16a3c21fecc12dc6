"""Prometheus metrics for itinerary transactions and route recomputes."""

from prometheus_client import Counter, Histogram

# Transaction metrics
itinerary_transactions_total = Counter(
    "itinerary_transactions_total",
    "Total itinerary transactions by terminal outcome",
    ["operation", "outcome"],
)

itinerary_transaction_conflicts_total = Counter(
    "itinerary_transaction_conflicts_total",
    "Total commit conflicts that triggered a retry",
    ["operation"],
)

itinerary_transaction_latency_ms = Histogram(
    "itinerary_transaction_latency_ms",
    "Itinerary transaction latency in milliseconds",
    ["operation", "outcome"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000],
)

# Aggregator metrics
journey_recompute_total = Counter(
    "journey_recompute_total",
    "Total master route recomputes",
    ["outcome"],
)

journey_recompute_skipped_trips_total = Counter(
    "journey_recompute_skipped_trips_total",
    "Total member trips skipped because their geometry could not be decoded",
)


class PrometheusEngineMetrics:
    """Prometheus-based engine metrics implementation."""

    def record_transaction(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record a finished transaction and its latency."""
        itinerary_transactions_total.labels(operation=operation, outcome=outcome).inc()
        itinerary_transaction_latency_ms.labels(operation=operation, outcome=outcome).observe(
            latency_ms
        )

    def inc_conflict(self, operation: str) -> None:
        """Increment commit conflict counter."""
        itinerary_transaction_conflicts_total.labels(operation=operation).inc()

    def inc_recompute(self, outcome: str) -> None:
        """Increment master route recompute counter."""
        journey_recompute_total.labels(outcome=outcome).inc()

    def inc_skipped_trip(self) -> None:
        """Increment counter of trips skipped during recompute."""
        journey_recompute_skipped_trips_total.inc()
