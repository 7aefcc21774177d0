# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
API Dependencies — FastAPI dependency injection.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException

from comptoir.core.tenant import TenantContext


def resolve_tenant_id(authorization: Optional[str], x_tenant_id: Optional[str]) -> Optional[str]:
    """X-Tenant-Id wins; otherwise the Bearer token carries the tenant id."""
    if x_tenant_id:
        return x_tenant_id
    if authorization:
        parts = authorization.split(" ")
        if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
            return parts[1]
    return None


async def get_current_tenant(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> TenantContext:
    """
    Extract tenant and user context from request headers.

    Headers:
      - X-Tenant-Id: tenant isolation key
      - Authorization: "Bearer <tenant>" when X-Tenant-Id is absent
      - X-User-Id: authenticated user, resolved upstream
    """
    tenant_id = resolve_tenant_id(authorization, x_tenant_id)
    if not tenant_id:
        raise HTTPException(status_code=401, detail="Missing tenant identification")
    return TenantContext(tenant_id=tenant_id, user_id=x_user_id)


async def get_current_user(tenant: TenantContext = Depends(get_current_tenant)) -> TenantContext:
    """Same as get_current_tenant, but a user id is mandatory."""
    if not tenant.user_id:
        raise HTTPException(status_code=401, detail="Missing user identification")
    return tenant
