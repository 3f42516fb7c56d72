# Overview: Permission system package.
# Re-exports the role hierarchy policy and permission catalogue.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    ACCOUNT_PERMISSIONS,
    CODE_PERMISSIONS,
    LEDGER_PERMISSIONS,
)
from .roles import (
    Role,
    AUTHORITY_RANK,
    ROLE_PERMISSIONS,
    SUBORDINATE_ROLES,
    parse_role,
    authority_rank,
    outranks,
    allowed_subordinate_roles,
    can_create,
    is_generation_authority,
)
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    validate_permission_code,
    role_has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "ACCOUNT_PERMISSIONS",
    "CODE_PERMISSIONS",
    "LEDGER_PERMISSIONS",
    "Role",
    "AUTHORITY_RANK",
    "ROLE_PERMISSIONS",
    "SUBORDINATE_ROLES",
    "parse_role",
    "authority_rank",
    "outranks",
    "allowed_subordinate_roles",
    "can_create",
    "is_generation_authority",
    "get_all_permission_codes",
    "get_permission_definition",
    "validate_permission_code",
    "role_has_permission",
]
