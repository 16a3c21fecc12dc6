"""Unit tests for the transaction orchestrator.

Tests cover:
1. Commit on first attempt
2. Retry with jitter on commit conflict, then ConflictError on exhaustion
3. Per-attempt timeout applies no writes
4. Engine errors abort without retry
5. Best-effort route refresh turns failures into warnings
6. Metrics and logging wiring
"""

import asyncio
from typing import Any

import pytest

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import TRIPS, DocumentPath, Transaction
from tripsync.app.db.inmemory import InMemoryDocumentStore
from tripsync.app.engine.errors import (
    ConflictError,
    JourneyNotFoundError,
    TransactionTimeoutError,
    TripNotFoundError,
)
from tripsync.app.engine.instrumentation import EngineMetrics, TransactionLogger
from tripsync.app.engine.orchestrator import (
    MutationResult,
    TransactionConfig,
    TransactionOrchestrator,
    TransactionOutcome,
)

CTX = RequestContext(tenant_id="tenant-a")
DOC = DocumentPath.of(CTX, TRIPS, "t1")


class RecordingMetrics(EngineMetrics):
    def __init__(self) -> None:
        self.transactions: list[tuple[str, str]] = []
        self.conflicts: list[str] = []
        self.recomputes: list[str] = []

    def record_transaction(self, operation: str, outcome: str, latency_ms: float) -> None:
        self.transactions.append((operation, outcome))

    def inc_conflict(self, operation: str) -> None:
        self.conflicts.append(operation)

    def inc_recompute(self, outcome: str) -> None:
        self.recomputes.append(outcome)


class RecordingLogger(TransactionLogger):
    def __init__(self) -> None:
        self.outcomes: list[tuple[int, str]] = []

    def log_attempt(
        self,
        ctx: RequestContext,
        operation: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        self.outcomes.append((attempt, outcome))


class FakeAggregator:
    def __init__(self, failing: set[str] | None = None, missing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.missing = missing or set()
        self.calls: list[str] = []

    async def recompute(self, ctx: RequestContext, journey_id: str) -> str | None:
        self.calls.append(journey_id)
        if journey_id in self.missing:
            raise JourneyNotFoundError(journey_id)
        if journey_id in self.failing:
            raise RuntimeError("store unavailable")
        return None


@pytest.fixture
def sleeps() -> list[float]:
    return []


def _orchestrator(
    store: InMemoryDocumentStore,
    sleeps: list[float],
    config: TransactionConfig | None = None,
    **kwargs: Any,
) -> TransactionOrchestrator:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return TransactionOrchestrator(store, config=config, sleep_fn=fake_sleep, **kwargs)


class TestRun:
    """Test TransactionOrchestrator.run()."""

    @pytest.mark.asyncio
    async def test_commits_on_first_attempt(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        metrics = RecordingMetrics()
        logger = RecordingLogger()
        orchestrator = _orchestrator(store, sleeps, metrics=metrics, tx_logger=logger)

        async def body(txn: Transaction) -> str:
            txn.set(DOC, {"name": "Leg"})
            return "done"

        assert await orchestrator.run(CTX, "create", body) == "done"
        assert (await store.get(DOC)).data == {"name": "Leg"}
        assert sleeps == []
        assert metrics.transactions == [("create", TransactionOutcome.COMMITTED.value)]
        assert logger.outcomes == [(1, "committed")]

    @pytest.mark.asyncio
    async def test_retries_conflict_from_fresh_reads(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        await store.set(DOC, {"count": 0})
        metrics = RecordingMetrics()
        orchestrator = _orchestrator(
            store,
            sleeps,
            config=TransactionConfig(retry_jitter_min_ms=20, retry_jitter_max_ms=100),
            metrics=metrics,
        )
        attempts = 0

        async def body(txn: Transaction) -> int:
            nonlocal attempts
            attempts += 1
            snapshot = await txn.get(DOC)
            if attempts == 1:
                # Concurrent writer lands between read and commit
                await store.set(DOC, {"count": 10})
            txn.set(DOC, {"count": snapshot.data["count"] + 1})
            return attempts

        assert await orchestrator.run(CTX, "increment", body) == 2
        assert (await store.get(DOC)).data == {"count": 11}
        assert len(sleeps) == 1
        assert 0.02 <= sleeps[0] <= 0.1
        assert metrics.conflicts == ["increment"]
        assert metrics.transactions == [("increment", "committed")]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_conflict(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        await store.set(DOC, {"count": 0})
        metrics = RecordingMetrics()
        orchestrator = _orchestrator(
            store, sleeps, config=TransactionConfig(max_attempts=3), metrics=metrics
        )

        async def body(txn: Transaction) -> None:
            await txn.get(DOC)
            await store.set(DOC, {"count": 99})
            txn.set(DOC, {"count": 1})

        with pytest.raises(ConflictError):
            await orchestrator.run(CTX, "contended", body)

        assert len(sleeps) == 2  # no sleep after the last attempt
        assert metrics.conflicts == ["contended"] * 3
        assert metrics.transactions == [("contended", "aborted")]
        assert (await store.get(DOC)).data == {"count": 99}

    @pytest.mark.asyncio
    async def test_timeout_applies_no_writes(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        logger = RecordingLogger()
        orchestrator = _orchestrator(
            store, sleeps, config=TransactionConfig(timeout_ms=10), tx_logger=logger
        )

        async def body(txn: Transaction) -> None:
            txn.set(DOC, {"name": "never"})
            await asyncio.sleep(1)

        with pytest.raises(TransactionTimeoutError):
            await orchestrator.run(CTX, "slow", body)

        assert not (await store.get(DOC)).exists
        assert logger.outcomes == [(1, "timeout")]

    @pytest.mark.asyncio
    async def test_engine_error_aborts_without_retry(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        metrics = RecordingMetrics()
        orchestrator = _orchestrator(store, sleeps, metrics=metrics)
        attempts = 0

        async def body(txn: Transaction) -> None:
            nonlocal attempts
            attempts += 1
            txn.set(DOC, {"name": "partial"})
            raise TripNotFoundError("t9")

        with pytest.raises(TripNotFoundError):
            await orchestrator.run(CTX, "broken", body)

        assert attempts == 1
        assert not (await store.get(DOC)).exists
        assert metrics.transactions == [("broken", "aborted")]


class TestRefresh:
    """Test post-commit route refresh."""

    @pytest.mark.asyncio
    async def test_failures_become_warnings(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        aggregator = FakeAggregator(failing={"j2"}, missing={"j3"})
        metrics = RecordingMetrics()
        orchestrator = _orchestrator(store, sleeps, aggregator=aggregator, metrics=metrics)

        warnings = await orchestrator.refresh_routes(CTX, ["j1", "j2", "j1", "j3"])

        assert aggregator.calls == ["j1", "j2", "j3"]
        assert len(warnings) == 1
        assert "j2" in warnings[0]
        assert "store unavailable" in warnings[0]
        assert metrics.recomputes == ["failed"]

    @pytest.mark.asyncio
    async def test_mutate_keeps_commit_when_refresh_fails(self, sleeps: list[float]) -> None:
        store = InMemoryDocumentStore()
        orchestrator = _orchestrator(store, sleeps, aggregator=FakeAggregator(failing={"j1"}))

        async def body(txn: Transaction) -> MutationResult[str]:
            txn.set(DOC, {"name": "Leg"})
            return MutationResult(value="t1", affected_journey_ids=["j1"])

        result = await orchestrator.mutate(CTX, "create", body)

        assert result.value == "t1"
        assert len(result.warnings) == 1
        assert (await store.get(DOC)).exists
