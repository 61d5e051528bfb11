from __future__ import annotations

from fastapi import Header, HTTPException, status

from contractlens.persistence.db import SessionLocal
from contractlens.persistence.guards import TENANT_KINDS, TenantRef
from contractlens.services.reports.assembler import SessionFactory


def get_session_factory() -> SessionFactory:
    # Report fan-out opens one session per source, so routes receive the factory.
    return SessionLocal


async def get_tenant(
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-Id"),
    x_tenant_kind: str = Header(default="user", alias="X-Tenant-Kind"),
) -> TenantRef:
    # Identity is established upstream by the auth provider and trusted as given.
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "AUTH_UNAUTHORIZED", "message": "Missing tenant identity"},
        )
    kind = x_tenant_kind.strip().lower()
    if kind not in TENANT_KINDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "TENANT_KIND_INVALID", "message": f"Unknown tenant kind: {x_tenant_kind}"},
        )
    return TenantRef(kind=kind, tenant_id=x_tenant_id)
