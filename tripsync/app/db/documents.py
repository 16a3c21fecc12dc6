"""Document store protocol interfaces and shared field-update semantics."""

import copy
from dataclasses import dataclass, field
from typing import Any, Protocol

from tripsync.app.db.context import RequestContext

TRIPS = "trips"
JOURNEYS = "journeys"
BOOKINGS = "bookings"
PACKING_LISTS = "packingLists"


class TransactionConflictError(Exception):
    """A document read inside the transaction changed before commit."""

    pass


class DocumentNotFoundError(Exception):
    """Field update targeted a document that does not exist."""

    pass


@dataclass(frozen=True)
class DocumentPath:
    """Hierarchical document address: tenant/{tenant_id}/{collection}/{doc_id}."""

    tenant_id: str
    collection: str
    doc_id: str

    def __str__(self) -> str:
        return f"tenant/{self.tenant_id}/{self.collection}/{self.doc_id}"

    @classmethod
    def of(cls, ctx: RequestContext, collection: str, doc_id: str) -> "DocumentPath":
        """Build a path scoped to the request's tenant."""
        return cls(tenant_id=ctx.tenant_id, collection=collection, doc_id=doc_id)


@dataclass
class DocumentSnapshot:
    """Point-in-time read of a document.

    version is 0 for a document that does not exist.
    """

    path: DocumentPath
    data: dict[str, Any] | None
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class ArrayUnion:
    """Field update sentinel: append values not already present."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Field update sentinel: remove every occurrence of the values."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass
class PendingWrite:
    """Buffered transactional write."""

    kind: str  # "set" | "update" | "delete"
    path: DocumentPath
    payload: dict[str, Any] = field(default_factory=dict)


def apply_field_updates(data: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of data with field updates applied.

    ArrayUnion and ArrayRemove are idempotent: adding a present value or
    removing an absent one leaves the array unchanged.
    """
    result = copy.deepcopy(data)
    for name, value in fields.items():
        if isinstance(value, ArrayUnion):
            current = list(result.get(name) or [])
            for item in value.values:
                if item not in current:
                    current.append(item)
            result[name] = current
        elif isinstance(value, ArrayRemove):
            current = list(result.get(name) or [])
            result[name] = [item for item in current if item not in value.values]
        else:
            result[name] = copy.deepcopy(value)
    return result


class Transaction(Protocol):
    """Multi-document transaction with optimistic conflict detection.

    Reads record the version they observed; writes are buffered and only
    applied by commit(), which fails with TransactionConflictError if any
    document read has changed in the meantime.
    """

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read a document and record its version."""
        ...

    async def get_all(self, paths: list[DocumentPath]) -> list[DocumentSnapshot]:
        """Read several documents, preserving order."""
        ...

    def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Buffer a full document write (create or overwrite)."""
        ...

    def update(self, path: DocumentPath, fields: dict[str, Any]) -> None:
        """Buffer a field update of an existing document."""
        ...

    def delete(self, path: DocumentPath) -> None:
        """Buffer a delete (no-op if the document is absent)."""
        ...

    async def commit(self) -> None:
        """Validate reads and apply all buffered writes atomically.

        Raises:
            TransactionConflictError: A read document changed before commit
            DocumentNotFoundError: An update targeted a missing document
        """
        ...


class DocumentStore(Protocol):
    """Tenant-scoped document store."""

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read a single document.

        Args:
            path: Document address

        Returns:
            Snapshot (exists is False when absent)
        """
        ...

    async def get_all(self, paths: list[DocumentPath]) -> list[DocumentSnapshot]:
        """Bulk read, preserving order."""
        ...

    async def list_collection(self, tenant_id: str, collection: str) -> list[DocumentSnapshot]:
        """List every document of a tenant's collection."""
        ...

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        ...

    async def update(self, path: DocumentPath, fields: dict[str, Any]) -> None:
        """Update fields of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    async def delete(self, path: DocumentPath) -> None:
        """Delete a document if present."""
        ...

    def transaction(self) -> Transaction:
        """Open a new transaction."""
        ...
