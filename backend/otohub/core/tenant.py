"""Tenant context resolution for inbound requests."""
import logging
from typing import Optional

from otohub.core.errors import NoTenantAssociated, TenantMismatch
from otohub.core.security import Principal

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


def resolve_tenant_context(principal: Principal, header_tenant_id: Optional[str] = None) -> Optional[str]:
    """
    Compute the single tenant id a request may operate against.

    Superadmins may pick any tenant through the header, or none for global
    views. Everyone else is pinned to the tenant in their token; the header
    is only accepted when it repeats that tenant.

    Args:
        principal: Authenticated principal
        header_tenant_id: Value of the X-Tenant-ID header, if sent

    Returns:
        Effective tenant id, or None for a tenant-less superadmin

    Raises:
        NoTenantAssociated: non-superadmin principal without a tenant
        TenantMismatch: header names a different tenant than the principal's
    """
    header_tenant_id = (header_tenant_id or "").strip() or None

    if principal.is_superadmin:
        return header_tenant_id

    if not principal.tenant_id:
        logger.warning(
            "Principal without tenant rejected",
            extra={"user_id": principal.subject_id},
        )
        raise NoTenantAssociated()

    if header_tenant_id is not None and header_tenant_id != principal.tenant_id:
        logger.warning(
            "Tenant override rejected",
            extra={
                "user_id": principal.subject_id,
                "tenant_id": principal.tenant_id,
                "requested_tenant_id": header_tenant_id,
            },
        )
        raise TenantMismatch()

    return principal.tenant_id
