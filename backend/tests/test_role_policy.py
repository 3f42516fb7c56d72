"""
Role hierarchy and permission grant tests.

Pure functions only; no database.
"""

import pytest

from dealerhub.decorators import require_permission
from dealerhub.errors import PolicyViolation
from dealerhub.permissions import (
    Role,
    ROLE_PERMISSIONS,
    allowed_subordinate_roles,
    authority_rank,
    can_create,
    get_all_permission_codes,
    get_permission_definition,
    is_generation_authority,
    outranks,
    parse_role,
    role_has_permission,
    validate_permission_code,
)


class TestSubordinateRoles:

    def test_admin_may_create_every_role(self):
        assert allowed_subordinate_roles(Role.ADMIN) == {
            Role.ADMIN, Role.SUPER, Role.DISTRIBUTOR, Role.RETAILER,
        }

    def test_super_creates_distributors_and_retailers(self):
        assert allowed_subordinate_roles(Role.SUPER) == {Role.DISTRIBUTOR, Role.RETAILER}

    def test_distributor_creates_retailers_only(self):
        assert allowed_subordinate_roles(Role.DISTRIBUTOR) == {Role.RETAILER}

    def test_retailer_creates_nothing(self):
        assert allowed_subordinate_roles(Role.RETAILER) == frozenset()

    @pytest.mark.parametrize(
        "actor,requested,expected",
        [
            ("Admin", "Admin", True),
            ("Super", "Super", False),
            ("Super", "Admin", False),
            ("Distributor", "Retailer", True),
            ("Distributor", "Distributor", False),
            ("Retailer", "Retailer", False),
        ],
    )
    def test_can_create(self, actor, requested, expected):
        assert can_create(actor, requested) is expected

    def test_unknown_requested_role_is_policy_violation(self):
        with pytest.raises(PolicyViolation):
            can_create(Role.ADMIN, "Owner")


class TestAuthorityOrder:

    def test_rank_is_strict_total_order(self):
        ranks = [authority_rank(r) for r in (Role.ADMIN, Role.SUPER, Role.DISTRIBUTOR, Role.RETAILER)]
        assert ranks == sorted(ranks, reverse=True)
        assert len(set(ranks)) == 4

    def test_outranks(self):
        assert outranks(Role.ADMIN, Role.SUPER)
        assert outranks("Distributor", "Retailer")
        assert not outranks(Role.RETAILER, Role.DISTRIBUTOR)
        assert not outranks(Role.SUPER, Role.SUPER)

    def test_only_admin_generates(self):
        assert is_generation_authority(Role.ADMIN)
        assert is_generation_authority("Admin")
        for role in (Role.SUPER, Role.DISTRIBUTOR, Role.RETAILER):
            assert not is_generation_authority(role)


class TestParseRole:

    def test_accepts_values_and_members(self):
        assert parse_role("Retailer") is Role.RETAILER
        assert parse_role(Role.SUPER) is Role.SUPER

    @pytest.mark.parametrize("value", ["admin", "Owner", "", None])
    def test_rejects_unknown(self, value):
        with pytest.raises(PolicyViolation):
            parse_role(value)


class TestPermissionGrants:

    def test_every_granted_code_is_defined(self):
        for role, codes in ROLE_PERMISSIONS.items():
            for code in codes:
                assert validate_permission_code(code), f"{role} grants unknown {code}"

    def test_catalogue_lookup(self):
        definition = get_permission_definition("ASSIGN_CODES")
        assert definition["category"] == "CODES"
        assert get_permission_definition("NOPE") is None
        assert len(get_all_permission_codes()) == len(set(get_all_permission_codes()))

    def test_unknown_permission_rejected_at_declaration(self):
        with pytest.raises(ValueError, match="NOPE"):
            require_permission("NOPE")
        assert callable(require_permission("VIEW_CODES"))

    @pytest.mark.parametrize("code", ["ASSIGN_CODES", "RETRIEVE_CODES", "CREATE_ACCOUNTS", "DELETE_ACCOUNTS"])
    def test_retailer_cannot_manage(self, code):
        assert not role_has_permission(Role.RETAILER, code)

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER, Role.DISTRIBUTOR])
    def test_dealers_can_transfer(self, role):
        assert role_has_permission(role, "ASSIGN_CODES")
        assert role_has_permission(role.value, "RETRIEVE_CODES")

    def test_retailer_can_view(self):
        assert role_has_permission("Retailer", "VIEW_CODES")
        assert role_has_permission("Retailer", "VIEW_TRANSFERS")
