from __future__ import annotations

import pytest

from contractlens.domain.models import Contract, UsageLog
from contractlens.persistence.guards import TenantPredicateError, TenantRef, require_tenant, tenant_predicate


def test_tenant_predicate_scopes_by_kind() -> None:
    user_clause = tenant_predicate(Contract, TenantRef.user("user-1"))
    org_clause = tenant_predicate(UsageLog, TenantRef.organization("org-1"))
    assert user_clause.left.key == "user_id"
    assert user_clause.right.value == "user-1"
    assert org_clause.left.key == "organization_id"
    assert org_clause.right.value == "org-1"


@pytest.mark.parametrize(
    "tenant",
    [None, TenantRef.user(""), TenantRef(kind="team", tenant_id="t-1")],  # type: ignore[arg-type]
)
def test_require_tenant_rejects_missing_or_unknown_identity(tenant) -> None:
    with pytest.raises(TenantPredicateError):
        require_tenant(tenant)
    if tenant is not None:
        with pytest.raises(TenantPredicateError):
            tenant_predicate(Contract, tenant)
