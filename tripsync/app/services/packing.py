"""Packing lists, one per trip."""

from collections.abc import Mapping
from typing import Any

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import PACKING_LISTS, DocumentPath, Transaction
from tripsync.app.engine.orchestrator import TransactionOrchestrator
from tripsync.app.models.common import utcnow
from tripsync.app.models.packing import PackingList, PackingListUpdate
from tripsync.app.models.validation import require_valid
from tripsync.app.services.loaders import load_trip


class PackingListService:
    """Read and replace a trip's packing list."""

    def __init__(self, orchestrator: TransactionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def get_packing_list(self, ctx: RequestContext, trip_id: str) -> PackingList:
        """Packing list for a trip (empty when none has been saved).

        Raises:
            TripNotFoundError: Trip does not exist
        """
        store = self._orchestrator.store
        await load_trip(store, ctx, trip_id)
        snapshot = await store.get(DocumentPath.of(ctx, PACKING_LISTS, trip_id))
        if not snapshot.exists:
            return PackingList(trip_id=trip_id)
        return PackingList.model_validate(snapshot.data)

    async def save_packing_list(
        self,
        ctx: RequestContext,
        trip_id: str,
        packing_list: PackingListUpdate | Mapping[str, Any],
    ) -> PackingList:
        """Replace a trip's packing list.

        The trip is read in the same transaction so a list is never saved for a
        trip that is concurrently being deleted.

        Raises:
            InputValidationError: Invalid list
            TripNotFoundError: Trip does not exist
        """
        payload = require_valid(PackingListUpdate, packing_list)

        async def body(txn: Transaction) -> PackingList:
            await load_trip(txn, ctx, trip_id)
            record = PackingList(trip_id=trip_id, categories=payload.categories, updated_at=utcnow())
            txn.set(DocumentPath.of(ctx, PACKING_LISTS, trip_id), record.model_dump(mode="json"))
            return record

        return await self._orchestrator.run(ctx, "save_packing_list", body)
