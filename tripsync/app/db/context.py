"""Request context for tenancy enforcement."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    """Request context carrying the already-verified tenant identity.

    Every document path is rooted at the tenant, so no store operation can
    reach another tenant's data.
    """

    tenant_id: str
