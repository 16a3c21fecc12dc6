"""Service dependencies for route handlers."""

from typing import Annotated

from fastapi import Depends

from tripsync.app.config import Settings, get_settings
from tripsync.app.db.documents import DocumentStore
from tripsync.app.db.engine import get_document_store
from tripsync.app.engine.aggregator import MasterRouteAggregator
from tripsync.app.engine.orchestrator import TransactionConfig, TransactionOrchestrator
from tripsync.app.services.bookings import BookingService
from tripsync.app.services.journeys import JourneyService
from tripsync.app.services.packing import PackingListService
from tripsync.app.services.trips import TripService
from tripsync.app.utils.logging import StructuredTransactionLogger
from tripsync.app.utils.metrics import PrometheusEngineMetrics


def get_orchestrator(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TransactionOrchestrator:
    """Orchestrator wired with Prometheus metrics and structured logging."""
    metrics = PrometheusEngineMetrics()
    return TransactionOrchestrator(
        store,
        config=TransactionConfig.from_settings(settings),
        aggregator=MasterRouteAggregator(
            store, precision=settings.polyline_precision, metrics=metrics
        ),
        metrics=metrics,
        tx_logger=StructuredTransactionLogger(),
    )


Orchestrator = Annotated[TransactionOrchestrator, Depends(get_orchestrator)]


def get_booking_service(orchestrator: Orchestrator) -> BookingService:
    return BookingService(orchestrator)


def get_trip_service(orchestrator: Orchestrator) -> TripService:
    return TripService(orchestrator)


def get_journey_service(orchestrator: Orchestrator) -> JourneyService:
    return JourneyService(orchestrator)


def get_packing_list_service(orchestrator: Orchestrator) -> PackingListService:
    return PackingListService(orchestrator)
