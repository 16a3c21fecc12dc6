"""In-memory implementation of the document store interfaces."""

import asyncio
import copy
from typing import Any

from tripsync.app.db.documents import (
    DocumentNotFoundError,
    DocumentPath,
    DocumentSnapshot,
    PendingWrite,
    TransactionConflictError,
    apply_field_updates,
)


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore.

    Each document carries a version that is bumped on every write; transactions
    use it for optimistic conflict detection.
    """

    def __init__(self) -> None:
        self._docs: dict[DocumentPath, tuple[int, dict[str, Any]]] = {}
        self._commit_lock = asyncio.Lock()

    def _snapshot(self, path: DocumentPath) -> DocumentSnapshot:
        entry = self._docs.get(path)
        if entry is None:
            return DocumentSnapshot(path=path, data=None, version=0)
        version, data = entry
        return DocumentSnapshot(path=path, data=copy.deepcopy(data), version=version)

    def _current_version(self, path: DocumentPath) -> int:
        entry = self._docs.get(path)
        return entry[0] if entry else 0

    def _write(self, path: DocumentPath, data: dict[str, Any]) -> None:
        self._docs[path] = (self._current_version(path) + 1, copy.deepcopy(data))

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read a single document."""
        return self._snapshot(path)

    async def get_all(self, paths: list[DocumentPath]) -> list[DocumentSnapshot]:
        """Bulk read, preserving order."""
        return [self._snapshot(path) for path in paths]

    async def list_collection(self, tenant_id: str, collection: str) -> list[DocumentSnapshot]:
        """List every document of a tenant's collection."""
        return [
            self._snapshot(path)
            for path in self._docs
            if path.tenant_id == tenant_id and path.collection == collection
        ]

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        async with self._commit_lock:
            self._write(path, data)

    async def update(self, path: DocumentPath, fields: dict[str, Any]) -> None:
        """Update fields of an existing document."""
        async with self._commit_lock:
            entry = self._docs.get(path)
            if entry is None:
                raise DocumentNotFoundError(f"No document at {path}")
            self._write(path, apply_field_updates(entry[1], fields))

    async def delete(self, path: DocumentPath) -> None:
        """Delete a document if present."""
        async with self._commit_lock:
            self._docs.pop(path, None)

    def transaction(self) -> "InMemoryTransaction":
        """Open a new transaction."""
        return InMemoryTransaction(self)

    async def _commit(self, reads: dict[DocumentPath, int], writes: list[PendingWrite]) -> None:
        async with self._commit_lock:
            for path, seen_version in reads.items():
                if self._current_version(path) != seen_version:
                    raise TransactionConflictError(f"{path} changed during transaction")

            # Stage against a scratch copy so a failing update leaves nothing applied
            staged: dict[DocumentPath, dict[str, Any] | None] = {}
            for write in writes:
                if write.kind == "set":
                    staged[write.path] = write.payload
                elif write.kind == "update":
                    base = staged[write.path] if write.path in staged else self._snapshot(write.path).data
                    if base is None:
                        raise DocumentNotFoundError(f"No document at {write.path}")
                    staged[write.path] = apply_field_updates(base, write.payload)
                else:
                    staged[write.path] = None

            for path, data in staged.items():
                if data is None:
                    self._docs.pop(path, None)
                else:
                    self._write(path, data)


class InMemoryTransaction:
    """In-memory implementation of Transaction."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._reads: dict[DocumentPath, int] = {}
        self._writes: list[PendingWrite] = []

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read a document and record its version."""
        snapshot = await self._store.get(path)
        self._reads.setdefault(path, snapshot.version)
        return snapshot

    async def get_all(self, paths: list[DocumentPath]) -> list[DocumentSnapshot]:
        """Read several documents, preserving order."""
        return [await self.get(path) for path in paths]

    def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Buffer a full document write."""
        self._writes.append(PendingWrite(kind="set", path=path, payload=copy.deepcopy(data)))

    def update(self, path: DocumentPath, fields: dict[str, Any]) -> None:
        """Buffer a field update."""
        self._writes.append(PendingWrite(kind="update", path=path, payload=dict(fields)))

    def delete(self, path: DocumentPath) -> None:
        """Buffer a delete."""
        self._writes.append(PendingWrite(kind="delete", path=path))

    async def commit(self) -> None:
        """Validate reads and apply buffered writes atomically."""
        await self._store._commit(self._reads, self._writes)
