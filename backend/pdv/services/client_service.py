# Overview: Service-layer operations for clients; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func, or_

from ..errors import ConstraintViolationError, ValidationError
from ..models import Client, LoyaltyHistoryEntry, Sale, ServiceOrder
from ..time_utils import to_utc_z
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .pagination import paginate
from .tenant_service import get_owned_or_404, scoped_query


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "email", "phone", "tax_id", "address", "city", "state",
        "zip_code", "birth_date", "notes",
    }),
    required_on_create=frozenset({"name"}),
)


def _check_email(patch: dict) -> None:
    email = patch.get("email")
    if email:
        if "@" not in email:
            raise ValidationError("email must be a valid address")
        patch["email"] = email.lower()


def list_clients(session, tenant_id: int, *, search: str | None = None,
                 page: int | None = None, per_page: int | None = None) -> dict:
    query = scoped_query(session, Client, tenant_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Client.name.ilike(like),
            Client.email.ilike(like),
            Client.phone.ilike(like),
            Client.tax_id.ilike(like),
        ))
    return paginate(
        query.order_by(Client.name.asc(), Client.id.asc()),
        page=page,
        per_page=per_page,
        serialize=lambda client: client.to_dict(),
    )


def get_client(session, tenant_id: int, client_id: int) -> Client:
    return get_owned_or_404(session, Client, client_id, tenant_id)


def create_client(session, tenant_id: int, payload: dict) -> Client:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
    _check_email(patch)

    client = Client(tenant_id=tenant_id)
    apply_patch(client, patch)
    session.add(client)
    session.commit()
    return client


def update_client(session, tenant_id: int, client_id: int, payload: dict) -> Client:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    _check_email(patch)

    client = get_owned_or_404(session, Client, client_id, tenant_id)
    apply_patch(client, patch)
    session.commit()
    return client


def delete_client(session, tenant_id: int, client_id: int) -> None:
    """
    Delete a client with no recorded activity.

    Sales, service orders, and loyalty history reference clients and are
    never cascaded, so a client with any of them cannot be removed.
    """
    client = get_owned_or_404(session, Client, client_id, tenant_id)

    for model in (Sale, ServiceOrder, LoyaltyHistoryEntry):
        if session.query(model.id).filter(model.client_id == client.id).first() is not None:
            raise ConstraintViolationError(
                "Client has recorded activity and cannot be deleted",
                {"client_id": client.id, "referenced_by": model.__tablename__},
            )

    session.delete(client)
    session.commit()


def client_stats(session, tenant_id: int, client_id: int) -> dict:
    """Purchase count, total spent, and average ticket for one client."""
    client = get_owned_or_404(session, Client, client_id, tenant_id)

    count, total, average = session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.avg(Sale.total_cents), 0),
    ).filter(Sale.tenant_id == tenant_id, Sale.client_id == client.id).one()

    last_purchase = (
        session.query(func.max(Sale.created_at))
        .filter(Sale.tenant_id == tenant_id, Sale.client_id == client.id)
        .scalar()
    )

    return {
        "client_id": client.id,
        "purchase_count": int(count),
        "total_spent_cents": int(total),
        "average_ticket_cents": int(round(float(average))),
        "last_purchase_at": to_utc_z(last_purchase),
    }
