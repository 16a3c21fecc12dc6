"""Health check endpoints.

- /health always answers while the process is up
- /healthz checks the document store and reports component status
"""

import json
import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response

from tripsync.app.config import Settings, get_settings
from tripsync.app.db.documents import DocumentPath, DocumentStore
from tripsync.app.db.engine import get_document_store

router = APIRouter()

_PROBE_TENANT = "__healthcheck__"


async def check_store(store: DocumentStore) -> tuple[bool, str]:
    """Check document store connectivity with a read of a missing document.

    Returns:
        (is_ok, status_message)
    """
    try:
        await store.get(DocumentPath(_PROBE_TENANT, "probe", uuid.uuid4().hex))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if the store is reachable
        503 otherwise
    """
    store_ok, store_status = await check_store(store)

    response_body = {
        "status": "ok" if store_ok else "degraded",
        "components": {
            "store": store_status,
            "store_backend": settings.store_backend,
        },
    }

    if not store_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
