"""Structured logging for itinerary transactions."""

import logging
from typing import Any

from tripsync.app.db.context import RequestContext

logger = logging.getLogger(__name__)


class StructuredTransactionLogger:
    """Structured logger for transaction attempts."""

    def log_attempt(
        self,
        ctx: RequestContext,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log transaction attempt with structured data."""
        log_data: dict[str, Any] = {
            "tenant_id": ctx.tenant_id,
            "operation": operation,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Transaction: {operation} - {outcome}"

        if outcome == "committed":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
