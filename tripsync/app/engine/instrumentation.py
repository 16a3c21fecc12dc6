"""Metrics and logging interfaces used by the engine.

Both default to no-ops; Prometheus and structured-log implementations live in
tripsync.app.utils.
"""

from tripsync.app.db.context import RequestContext


# Metrics interface (to be implemented by actual metrics system)
class EngineMetrics:
    """Interface for engine metrics."""

    def record_transaction(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record a finished transaction and its latency."""
        pass

    def inc_conflict(self, operation: str) -> None:
        """Increment commit conflict counter."""
        pass

    def inc_recompute(self, outcome: str) -> None:
        """Increment master route recompute counter."""
        pass

    def inc_skipped_trip(self) -> None:
        """Increment counter of trips skipped during recompute."""
        pass


# Logging interface
class TransactionLogger:
    """Interface for structured transaction logging."""

    def log_attempt(
        self,
        ctx: RequestContext,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a single transaction attempt."""
        pass
