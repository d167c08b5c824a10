# Overview: Authenticated principal types and tenant resolution.

"""
Principals

WHY: Two kinds of accounts act on tenant data. An owner IS the tenant; an
employee acts for the owner that employs them. Modelling them as a closed
union makes "which tenant does this request touch" a total function instead
of a pair of nullable fields checked ad hoc.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


OWNER = "owner"
EMPLOYEE = "employee"


@dataclass(frozen=True)
class OwnerPrincipal:
    id: int
    is_admin: bool = False

    kind = OWNER

    @property
    def tenant_id(self) -> int:
        return self.id


@dataclass(frozen=True)
class EmployeePrincipal:
    id: int
    tenant_id: int
    role: str = "seller"

    kind = EMPLOYEE

    @property
    def is_admin(self) -> bool:
        # Platform administration is reserved to owner accounts
        return False


Principal = Union[OwnerPrincipal, EmployeePrincipal]


def tenant_id_for(principal: Principal) -> int:
    if isinstance(principal, OwnerPrincipal):
        return principal.id
    if isinstance(principal, EmployeePrincipal):
        return principal.tenant_id
    raise TypeError(f"Unknown principal type: {type(principal).__name__}")


def principal_from_session(kind: str, principal_id: int, tenant_id: int, *, is_admin: bool = False,
                           role: str | None = None) -> Principal:
    """Rebuild a principal from the fields stored on a session row."""
    if kind == OWNER:
        return OwnerPrincipal(id=principal_id, is_admin=is_admin)
    if kind == EMPLOYEE:
        return EmployeePrincipal(id=principal_id, tenant_id=tenant_id, role=role or "seller")
    raise ValueError(f"Unknown principal kind: {kind}")
