# Overview: Role hierarchy policy and default role -> permission grants.

"""
Dealer role hierarchy.

Roles form a strict total order of authority:

    Admin > Super > Distributor > Retailer

- An actor may only create accounts whose role is in its subordinate set.
- Only Admin holds generation authority: an Admin "assign" manufactures new
  codes instead of moving codes it holds, and its balance never changes.
- Everything here is pure; no database access.
"""

from __future__ import annotations

from enum import Enum

from ..errors import PolicyViolation


class Role(str, Enum):
    ADMIN = "Admin"
    SUPER = "Super"
    DISTRIBUTOR = "Distributor"
    RETAILER = "Retailer"


# Higher rank = more authority
AUTHORITY_RANK = {
    Role.ADMIN: 3,
    Role.SUPER: 2,
    Role.DISTRIBUTOR: 1,
    Role.RETAILER: 0,
}

SUBORDINATE_ROLES = {
    Role.ADMIN: frozenset({Role.ADMIN, Role.SUPER, Role.DISTRIBUTOR, Role.RETAILER}),
    Role.SUPER: frozenset({Role.DISTRIBUTOR, Role.RETAILER}),
    Role.DISTRIBUTOR: frozenset({Role.RETAILER}),
    Role.RETAILER: frozenset(),
}

_VIEW_ONLY = frozenset({"VIEW_ACCOUNTS", "VIEW_CODES", "VIEW_TRANSFERS"})
_MANAGER = _VIEW_ONLY | {
    "CREATE_ACCOUNTS",
    "MANAGE_ACCOUNT_STATUS",
    "DELETE_ACCOUNTS",
    "ASSIGN_CODES",
    "RETRIEVE_CODES",
}

ROLE_PERMISSIONS = {
    Role.ADMIN: _MANAGER,
    Role.SUPER: _MANAGER,
    Role.DISTRIBUTOR: _MANAGER,
    Role.RETAILER: _VIEW_ONLY,
}


def parse_role(value) -> Role:
    """Coerce a stored/role string into Role; unknown names are a policy violation."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise PolicyViolation(f"Unknown role: {value!r}") from None


def authority_rank(role) -> int:
    return AUTHORITY_RANK[parse_role(role)]


def outranks(role, other) -> bool:
    """True if `role` has strictly more authority than `other`."""
    return authority_rank(role) > authority_rank(other)


def allowed_subordinate_roles(role) -> frozenset:
    return SUBORDINATE_ROLES[parse_role(role)]


def can_create(actor_role, requested_role) -> bool:
    return parse_role(requested_role) in allowed_subordinate_roles(actor_role)


def is_generation_authority(role) -> bool:
    return parse_role(role) is Role.ADMIN
