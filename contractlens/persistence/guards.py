from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


TenantKind = Literal["user", "organization"]
TENANT_KINDS: tuple[str, ...] = ("user", "organization")


@dataclass(frozen=True)
class TenantPredicateError(RuntimeError):
    # Surface missing or malformed tenant identity before any query is built.
    message: str


@dataclass(frozen=True)
class TenantRef:
    # Explicit tenant identity threaded through every report query.
    kind: TenantKind
    tenant_id: str

    @classmethod
    def user(cls, user_id: str) -> "TenantRef":
        return cls(kind="user", tenant_id=user_id)

    @classmethod
    def organization(cls, organization_id: str) -> "TenantRef":
        return cls(kind="organization", tenant_id=organization_id)


def require_tenant(tenant: TenantRef | None) -> TenantRef:
    # Reject empty identities so no query ever runs unscoped.
    if tenant is None or not tenant.tenant_id:
        raise TenantPredicateError("Tenant predicate required but tenant_id is missing")
    if tenant.kind not in TENANT_KINDS:
        raise TenantPredicateError(f"Unknown tenant kind: {tenant.kind}")
    return tenant


def tenant_predicate(model, tenant: TenantRef) -> object:
    # Build tenant predicates through a single helper to guarantee guard coverage.
    require_tenant(tenant)
    if tenant.kind == "organization":
        return model.organization_id == tenant.tenant_id
    return model.user_id == tenant.tenant_id
