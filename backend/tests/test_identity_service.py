"""
Identity provider tests (database provider, bcrypt, session tokens).
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD
from dealerhub.errors import IdentityError, PolicyViolation
from dealerhub.models import Identity, SessionToken
from dealerhub.permissions import Role
from dealerhub.services import account_service, identity_service
from dealerhub.services.identity_service import (
    DatabaseIdentityProvider,
    get_identity_provider,
    hash_password,
    hash_token,
    verify_password,
)
from dealerhub.time_utils import utcnow


@pytest.fixture
def provider(db_session):
    return get_identity_provider()


def test_registered_provider_is_database_backed(app):
    assert isinstance(app.extensions["identity_provider"], DatabaseIdentityProvider)


class TestPasswords:

    def test_hash_is_bcrypt_and_verifies(self):
        hashed = hash_password("hunter22", rounds=4)
        assert hashed.startswith("$2")
        assert "hunter22" not in hashed
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_short_password_rejected(self):
        with pytest.raises(IdentityError):
            hash_password("abc", rounds=4)

    def test_malformed_hash_never_matches(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestDatabaseProvider:

    def test_create_and_authenticate(self, provider, db_session):
        identity_id = provider.create_identity("Person@Example.com", PASSWORD)

        identity = db_session.get(Identity, identity_id)
        assert identity.email == "person@example.com"
        assert identity.password_hash != PASSWORD
        assert provider.authenticate("person@example.com", PASSWORD) == identity_id
        assert provider.authenticate("person@example.com", "wrong-pass") is None
        assert provider.authenticate("nobody@example.com", PASSWORD) is None
        assert db_session.get(Identity, identity_id).last_login_at is not None

    def test_duplicate_email(self, provider):
        provider.create_identity("dup@example.com", PASSWORD)
        with pytest.raises(IdentityError):
            provider.create_identity("DUP@example.com", PASSWORD)

    def test_token_lifecycle(self, provider, db_session):
        identity_id = provider.create_identity("tok@example.com", PASSWORD)
        token = provider.issue_token(identity_id)

        stored = db_session.query(SessionToken).one()
        assert stored.token_hash == hash_token(token)
        assert provider.resolve_token(token) == identity_id

        assert provider.revoke_token(token) is True
        assert provider.resolve_token(token) is None
        assert provider.revoke_token(token) is False

    def test_expired_token(self, provider, db_session):
        identity_id = provider.create_identity("old@example.com", PASSWORD)
        token = provider.issue_token(identity_id)
        session = db_session.query(SessionToken).one()
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert provider.resolve_token(token) is None

    def test_idle_token_is_revoked(self, provider, db_session):
        identity_id = provider.create_identity("idle@example.com", PASSWORD)
        token = provider.issue_token(identity_id)
        session = db_session.query(SessionToken).one()
        session.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert provider.resolve_token(token) is None
        db_session.refresh(session)
        assert session.is_revoked
        assert session.revoked_reason == "Idle timeout"

    def test_delete_identity_drops_sessions(self, provider, db_session):
        identity_id = provider.create_identity("gone@example.com", PASSWORD)
        token = provider.issue_token(identity_id)

        provider.delete_identity(identity_id)

        assert db_session.get(Identity, identity_id) is None
        assert db_session.query(SessionToken).count() == 0
        assert provider.resolve_token(token) is None

    def test_delete_missing_identity_is_noop(self, provider):
        provider.delete_identity("missing")


class TestLogin:

    def test_login_by_mobile_number(self, root_admin):
        account, token = identity_service.login(root_admin.mobile_number, PASSWORD)
        assert account.id == root_admin.id

        actor = identity_service.resolve_current_actor(token)
        assert actor.id == root_admin.id
        assert actor.role is Role.ADMIN

    def test_bad_credentials(self, root_admin):
        assert identity_service.login(root_admin.mobile_number, "wrong-pass") is None
        assert identity_service.login("0000000000", PASSWORD) is None

    def test_inactive_account_cannot_login(self, root_admin):
        child = account_service.create_account(
            root_admin.id,
            {
                "name": "Shop Owner",
                "email": "owner@example.com",
                "mobile_number": "9111111111",
                "address": "22 Bazaar Street",
                "shop_name": "Owner Mobiles",
                "dealer_code": "OM1",
                "role": "Retailer",
            },
            PASSWORD,
        )
        _, token = identity_service.login(child.mobile_number, PASSWORD)
        account_service.set_account_status(root_admin.id, child.id, "inactive")

        with pytest.raises(PolicyViolation):
            identity_service.login(child.mobile_number, PASSWORD)
        assert identity_service.resolve_current_actor(token) is None

    def test_logout(self, root_admin):
        _, token = identity_service.login(root_admin.mobile_number, PASSWORD)
        assert identity_service.logout(token) is True
        assert identity_service.resolve_current_actor(token) is None
