"""Minimal auth dependency.

Stub implementation that takes the tenant id from the bearer token or falls
back to the configured dev tenant. Real token verification lives in front of
this service.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from tripsync.app.config import get_settings
from tripsync.app.db.context import RequestContext


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Accepts "Bearer <tenant_id>"; with no header the default tenant is used.

    Args:
        authorization: Authorization header (e.g., "Bearer <tenant_id>")

    Returns:
        RequestContext with tenant_id

    Raises:
        HTTPException: If authorization is invalid
    """
    if not authorization:
        return RequestContext(tenant_id=get_settings().default_tenant_id)

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:].strip()  # Strip "Bearer "

    # Tenant ids become path segments
    if not token or "/" in token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token (expected tenant id)",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return RequestContext(tenant_id=token)
