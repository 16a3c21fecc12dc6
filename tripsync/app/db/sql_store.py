"""SQL implementation of the document store interfaces."""

import copy
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from tripsync.app.db.documents import (
    DocumentNotFoundError,
    DocumentPath,
    DocumentSnapshot,
    PendingWrite,
    TransactionConflictError,
    apply_field_updates,
)
from tripsync.app.db.models import Document


def _key(path: DocumentPath) -> tuple[str, str, str]:
    return (path.tenant_id, path.collection, path.doc_id)


def _to_snapshot(path: DocumentPath, row: Document | None) -> DocumentSnapshot:
    if row is None:
        return DocumentSnapshot(path=path, data=None, version=0)
    return DocumentSnapshot(path=path, data=copy.deepcopy(row.data), version=row.version)


class SqlDocumentStore:
    """SQL implementation of DocumentStore.

    Documents live in a single table keyed by (tenant_id, collection, doc_id).
    Optimistic concurrency relies on the mapper's version_id_col: an UPDATE
    whose version no longer matches raises StaleDataError, which surfaces as
    TransactionConflictError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, path: DocumentPath) -> DocumentSnapshot:
        """Read a single document."""
        async with self._session_factory() as session:
            row = await session.get(Document, _key(path))
            return _to_snapshot(path, row)

    async def get_all(self, paths: list[DocumentPath]) -> list[DocumentSnapshot]:
        """Bulk read, preserving order."""
        async with self._session_factory() as session:
            snapshots = []
            for path in paths:
                row = await session.get(Document, _key(path))
                snapshots.append(_to_snapshot(path, row))
            return snapshots

    async def list_collection(self, tenant_id: str, collection: str) -> list[DocumentSnapshot]:
        """List every document of a tenant's collection."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Document)
                .where(Document.tenant_id == tenant_id, Document.collection == collection)
                .order_by(Document.doc_id)
            )
            return [
                _to_snapshot(DocumentPath(row.tenant_id, row.collection, row.doc_id), row)
                for row in result.scalars()
            ]

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        await self._apply({}, [PendingWrite(kind="set", path=path, payload=data)])

    async def update(self, path: DocumentPath, fields: dict[str, Any]) -> None:
        """Update fields of an existing document."""
        await self._apply({}, [PendingWrite(kind="update", path=path, payload=fields)])

    async def delete(self, path: DocumentPath) -> None:
        """Delete a document if present."""
        await self._apply({}, [PendingWrite(kind="delete", path=path)])

    def transaction(self) -> "SqlTransaction":
        """Open a new transaction."""
        return SqlTransaction(self)

    async def _apply(self, reads: dict[DocumentPath, int], writes: list[PendingWrite]) -> None:
        """Validate read versions and apply writes inside one database transaction."""
        try:
            async with self._session_factory() as session, session.begin():
                rows: dict[DocumentPath, Document | None] = {}
                for path in list(reads) + [w.path for w in writes]:
                    if path not in rows:
                        rows[path] = await session.get(
                            Document, _key(path), with_for_update=True
                        )

                for path, seen_version in reads.items():
                    row = rows[path]
                    current_version = row.version if row is not None else 0
                    if current_version != seen_version:
                        raise TransactionConflictError(f"{path} changed during transaction")

                for write in writes:
                    row = rows[write.path]
                    if write.kind == "set":
                        if row is None:
                            row = Document(
                                tenant_id=write.path.tenant_id,
                                collection=write.path.collection,
                                doc_id=write.path.doc_id,
                                data=copy.deepcopy(write.payload),
                            )
                            session.add(row)
                            rows[write.path] = row
                        else:
                            row.data = copy.deepcopy(write.payload)
                    elif write.kind == "update":
                        if row is None:
                            raise DocumentNotFoundError(f"No document at {write.path}")
                        row.data = apply_field_updates(row.data, write.payload)
                    else:
                        if row is not None:
                            await session.delete(row)
                            rows[write.path] = None
        except (StaleDataError, IntegrityError) as e:
            raise TransactionConflictError(f"Concurrent write detected: {e}") from e


class SqlTransaction:
    """SQL implementation of Transaction.

    Reads run in short sessions of their own; nothing is held open between
    the read phase and commit.
    """

    def __init__(self, store: SqlDocumentStore) -> None:
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
        snapshots = await self._store.get_all(paths)
        for snapshot in snapshots:
            self._reads.setdefault(snapshot.path, snapshot.version)
        return snapshots

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
        await self._store._apply(self._reads, self._writes)
