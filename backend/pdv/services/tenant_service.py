"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every request is scoped to a tenant (an owner account), and cross-tenant
access must be explicitly denied.

SECURITY INVARIANTS:
1. Every authenticated request has g.tenant_id set (from the session)
2. IDs from client input are resolved through get_owned_or_404
3. Queries touching tenant data go through scoped_query
4. A row owned by another tenant is reported exactly like a missing row,
   so callers cannot test for existence across tenants
5. Cross-tenant attempts are written to the activity log once the failed
   unit of work has been rolled back

USAGE:
    from pdv.services.tenant_service import get_owned_or_404, scoped_query

    client = get_owned_or_404(session, Client, client_id, tenant_id)
    products = scoped_query(session, Product, tenant_id).all()
"""

from __future__ import annotations

from flask import g

from ..errors import NotFoundError
from . import audit_service


class CrossTenantAccessError(NotFoundError):
    """
    A referenced row exists but belongs to another tenant.

    Subclasses NotFoundError so the HTTP response is identical to a missing
    row; the extra attributes are for the audit trail only and are never
    serialized.
    """

    def __init__(self, message: str, *, model: str, entity_id, tenant_id: int, owner_tenant_id: int):
        super().__init__(message)
        self.model = model
        self.entity_id = entity_id
        self.tenant_id = tenant_id
        self.owner_tenant_id = owner_tenant_id


def get_current_tenant_id() -> int:
    """
    Get current tenant id from Flask g context.

    Raises RuntimeError if the tenant is not set; this should never happen
    after @require_auth.
    """
    tenant_id = getattr(g, "tenant_id", None)
    if tenant_id is None:
        raise RuntimeError("Tenant context not established")
    return tenant_id


def scoped_query(session, model, tenant_id: int):
    """Query for a tenant-owned model, filtered to one tenant."""
    return session.query(model).filter(model.tenant_id == tenant_id)


def get_owned_or_404(session, model, entity_id, tenant_id: int, *, lock: bool = False):
    """
    Load a tenant-owned row or raise NotFoundError.

    Raises CrossTenantAccessError (a NotFoundError) when the row exists under
    another tenant.
    """
    query = session.query(model).filter(model.id == entity_id)
    if lock:
        query = query.with_for_update()
    entity = query.first()

    if entity is None:
        raise NotFoundError(f"{model.__name__} not found", {"id": entity_id})

    if entity.tenant_id != tenant_id:
        raise CrossTenantAccessError(
            f"{model.__name__} not found",
            model=model.__name__,
            entity_id=entity_id,
            tenant_id=tenant_id,
            owner_tenant_id=entity.tenant_id,
        )

    return entity


def get_optional_owned(session, model, entity_id, tenant_id: int):
    """get_owned_or_404 for optional foreign keys: None passes through."""
    if entity_id is None:
        return None
    return get_owned_or_404(session, model, entity_id, tenant_id)


def record_cross_tenant_attempt(session, exc: CrossTenantAccessError, *, principal=None) -> None:
    """Write the audit row for a denied cross-tenant lookup (best-effort)."""
    audit_service.log_activity(
        session,
        audit_service.CROSS_TENANT_ACCESS_DENIED,
        tenant_id=exc.tenant_id,
        principal=principal,
        details={
            "model": exc.model,
            "entity_id": exc.entity_id,
            "owner_tenant_id": exc.owner_tenant_id,
        },
    )
