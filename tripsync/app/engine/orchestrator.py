"""Transaction orchestration for itinerary mutations.

Every mutation runs as Open -> Read -> Compute -> Commit against the document
store. A commit conflict restarts the whole attempt from fresh reads, with
jittered back-off, up to a bounded number of attempts. Each attempt has a hard
deadline; writes are buffered until commit so a timed-out attempt applies
nothing.

Route recomputes for affected journeys run after commit, outside the
transaction, and can only ever add warnings to the result.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from tripsync.app.config import Settings
from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import (
    DocumentNotFoundError,
    DocumentStore,
    Transaction,
    TransactionConflictError,
)
from tripsync.app.engine.aggregator import MasterRouteAggregator
from tripsync.app.engine.errors import (
    ConflictError,
    ItineraryError,
    JourneyNotFoundError,
    PartialDegradation,
    TransactionTimeoutError,
)
from tripsync.app.engine.instrumentation import EngineMetrics, TransactionLogger

T = TypeVar("T")

logger = logging.getLogger(__name__)


class TransactionOutcome(str, Enum):
    """Terminal state of an orchestrated transaction."""

    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass
class TransactionConfig:
    """Retry and deadline configuration."""

    max_attempts: int = 5
    timeout_ms: int = 5000
    retry_jitter_min_ms: int = 20
    retry_jitter_max_ms: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> "TransactionConfig":
        return cls(
            max_attempts=settings.transaction_max_attempts,
            timeout_ms=settings.transaction_timeout_ms,
            retry_jitter_min_ms=settings.transaction_retry_jitter_min_ms,
            retry_jitter_max_ms=settings.transaction_retry_jitter_max_ms,
        )


@dataclass
class MutationResult(Generic[T]):
    """Committed mutation value plus post-commit warnings."""

    value: T
    warnings: list[str] = field(default_factory=list)
    affected_journey_ids: list[str] = field(default_factory=list)


class TransactionOrchestrator:
    """Runs mutations transactionally and refreshes derived routes."""

    def __init__(
        self,
        store: DocumentStore,
        config: TransactionConfig | None = None,
        aggregator: MasterRouteAggregator | None = None,
        metrics: EngineMetrics | None = None,
        tx_logger: TransactionLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            store: Document store
            config: Retry/deadline configuration (defaults to TransactionConfig())
            aggregator: Route aggregator (defaults to one over the same store)
            metrics: Metrics recorder (optional, defaults to no-op)
            tx_logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self._store = store
        self._config = config or TransactionConfig()
        self._metrics = metrics or EngineMetrics()
        self._aggregator = aggregator or MasterRouteAggregator(store, metrics=self._metrics)
        self._logger = tx_logger or TransactionLogger()
        self._sleep = sleep_fn or asyncio.sleep

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def aggregator(self) -> MasterRouteAggregator:
        return self._aggregator

    async def _attempt(self, txn: Transaction, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        result = await fn(txn)
        await txn.commit()
        return result

    async def run(
        self,
        ctx: RequestContext,
        operation: str,
        fn: Callable[[Transaction], Awaitable[T]],
    ) -> T:
        """Run fn inside a transaction, retrying on commit conflicts.

        fn reads through the transaction and buffers its writes; it is invoked
        again from scratch on every retry and must not have side effects outside
        the transaction.

        Args:
            ctx: Request context
            operation: Operation name for logs and metrics
            fn: Transaction body

        Returns:
            Whatever fn returned on the committed attempt

        Raises:
            ConflictError: Conflicts persisted through every attempt
            TransactionTimeoutError: An attempt exceeded its deadline
            ItineraryError: Raised by fn (validation, not found); nothing is written
        """
        start_time = time.monotonic()
        timeout_sec = self._config.timeout_ms / 1000
        last_error: Exception | None = None

        for attempt in range(self._config.max_attempts):
            attempt_start = time.monotonic()
            txn = self._store.transaction()

            try:
                result = await asyncio.wait_for(self._attempt(txn, fn), timeout=timeout_sec)

            except (TransactionConflictError, DocumentNotFoundError) as e:
                # A document changed or vanished under us; re-read and try again
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = e
                self._metrics.inc_conflict(operation)
                self._logger.log_attempt(
                    ctx, operation, attempt + 1, "conflict", elapsed_ms, error_reason=str(e)
                )

                if attempt < self._config.max_attempts - 1:
                    jitter_ms = random.uniform(
                        self._config.retry_jitter_min_ms, self._config.retry_jitter_max_ms
                    )
                    await self._sleep(jitter_ms / 1000)
                    continue

            except TimeoutError as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._logger.log_attempt(
                    ctx, operation, attempt + 1, "timeout", elapsed_ms, error_reason="timeout"
                )
                self._finish(operation, TransactionOutcome.ABORTED, start_time)
                raise TransactionTimeoutError(
                    f"{operation} exceeded {self._config.timeout_ms}ms"
                ) from e

            except ItineraryError as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._logger.log_attempt(
                    ctx, operation, attempt + 1, "aborted", elapsed_ms,
                    error_reason=type(e).__name__,
                )
                self._finish(operation, TransactionOutcome.ABORTED, start_time)
                raise

            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._logger.log_attempt(ctx, operation, attempt + 1, "committed", elapsed_ms)
                self._finish(operation, TransactionOutcome.COMMITTED, start_time)
                return result

        # All attempts exhausted
        self._finish(operation, TransactionOutcome.ABORTED, start_time)
        raise ConflictError(
            f"{operation} conflicted on {self._config.max_attempts} attempts; retry the request"
        ) from last_error

    def _finish(self, operation: str, outcome: TransactionOutcome, start_time: float) -> None:
        elapsed_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_transaction(operation, outcome.value, elapsed_ms)

    async def refresh_routes(self, ctx: RequestContext, journey_ids: Iterable[str]) -> list[str]:
        """Best-effort recompute of each journey's master route.

        Returns:
            Warning messages for journeys whose route could not be refreshed
        """
        warnings: list[str] = []
        for journey_id in dict.fromkeys(journey_ids):
            try:
                await self._aggregator.recompute(ctx, journey_id)
            except JourneyNotFoundError:
                # Journey went away; nothing left to derive
                logger.info(f"[orchestrator] Journey {journey_id} gone, skipping route refresh")
            except Exception as e:
                degradation = PartialDegradation(journey_id, f"{type(e).__name__}: {e}")
                logger.warning(f"[orchestrator] {degradation}")
                self._metrics.inc_recompute("failed")
                warnings.append(str(degradation))
        return warnings

    async def mutate(
        self,
        ctx: RequestContext,
        operation: str,
        fn: Callable[[Transaction], Awaitable[MutationResult[T]]],
    ) -> MutationResult[T]:
        """Run a mutation, then refresh routes of the journeys it touched.

        fn returns a MutationResult naming the affected journeys; post-commit
        failures are appended to its warnings and never undo the commit.
        """
        result = await self.run(ctx, operation, fn)
        result.warnings.extend(await self.refresh_routes(ctx, result.affected_journey_ids))
        return result
