"""
Pytest fixtures for dealerhub backend tests.

Provides the in-memory app, a per-test table wipe, an account factory and a
stub identity provider.
"""

import uuid

import pytest

from dealerhub import create_app
from dealerhub.errors import IdentityError
from dealerhub.extensions import db
from dealerhub.models import Account
from dealerhub.permissions import Role, is_generation_authority
from dealerhub.services import account_service
from dealerhub.services.code_registry import generate_codes
from dealerhub.services.identity_service import EXTENSION_KEY, IdentityProvider


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'TRANSFER_RETRY_ATTEMPTS': 3,
        'TRANSFER_RETRY_BACKOFF': 0,
        'ADMIN_DISPLAY_BALANCE': 99999,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def make_account(db_session):
    """
    Insert an account row directly (no identity).

    Non-Admin accounts get `balance` freshly generated codes, so balance and
    owned codes agree the way the transfer engine keeps them.
    """
    counter = {"n": 0}

    def _make(role=Role.DISTRIBUTOR, created_by=None, balance=0, name=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        role = Role(role)
        account = Account(
            id=uuid.uuid4().hex,
            role=role.value,
            created_by_id=created_by.id if created_by is not None else None,
            name=name or f"{role.value} {n}",
            email=fields.pop("email", f"account{n}@example.com"),
            mobile_number=fields.pop("mobile_number", f"90000{n:05d}"),
            address=fields.pop("address", f"{n} Market Road"),
            shop_name=fields.pop("shop_name", f"Shop {n}"),
            dealer_code=fields.pop("dealer_code", f"D{n:03d}"),
            balance=balance,
            **fields,
        )
        db_session.add(account)
        db_session.flush()
        if balance and not is_generation_authority(role):
            generate_codes(balance, owner_id=account.id, issued_by_id="seed")
        db_session.commit()
        return account

    return _make


@pytest.fixture(scope='function')
def admin(make_account):
    return make_account(Role.ADMIN, balance=99999, name="Root Admin")


@pytest.fixture(scope='function')
def distributor(make_account, admin):
    return make_account(Role.DISTRIBUTOR, created_by=admin, name="Dana Distributor")


@pytest.fixture(scope='function')
def retailer(make_account, distributor):
    return make_account(Role.RETAILER, created_by=distributor, name="Ravi Retailer")


class StubIdentityProvider(IdentityProvider):
    """In-memory identity provider; set fail_on to make one call raise IdentityError."""

    def __init__(self):
        self.identities = {}
        self.tokens = {}
        self.fail_on = set()

    def _maybe_fail(self, op):
        if op in self.fail_on:
            raise IdentityError(f"stub provider refused {op}")

    def create_identity(self, email, password):
        self._maybe_fail("create_identity")
        identity_id = uuid.uuid4().hex
        self.identities[identity_id] = (email.lower(), password)
        return identity_id

    def delete_identity(self, identity_id):
        self._maybe_fail("delete_identity")
        self.identities.pop(identity_id, None)
        self.tokens = {t: i for t, i in self.tokens.items() if i != identity_id}

    def authenticate(self, email, password):
        for identity_id, creds in self.identities.items():
            if creds == (email.lower(), password):
                return identity_id
        return None

    def issue_token(self, identity_id):
        token = f"tok-{uuid.uuid4().hex}"
        self.tokens[token] = identity_id
        return token

    def resolve_token(self, token):
        return self.tokens.get(token)

    def revoke_token(self, token):
        return self.tokens.pop(token, None) is not None


@pytest.fixture(scope='function')
def stub_identity(app):
    """Swap the app's identity provider for the in-memory stub."""
    original = app.extensions[EXTENSION_KEY]
    stub = StubIdentityProvider()
    app.extensions[EXTENSION_KEY] = stub
    yield stub
    app.extensions[EXTENSION_KEY] = original


def account_payload(n: int, role: Role | str = Role.DISTRIBUTOR, **overrides) -> dict:
    """Valid create-account payload; n keeps email and mobile unique."""
    payload = {
        "name": f"Dealer {n}",
        "email": f"dealer{n}@example.com",
        "mobile_number": f"98765{n:05d}",
        "address": f"{n} Station Road",
        "shop_name": f"Mobile Hub {n}",
        "dealer_code": f"MH{n:03d}",
        "role": role.value if isinstance(role, Role) else role,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='function')
def root_admin(db_session):
    """Root Admin created through the real identity provider (can log in)."""
    return account_service.create_root_admin(
        {
            "name": "Root Admin",
            "email": "root@example.com",
            "mobile_number": "9000000000",
            "address": "1 Head Office Lane",
            "shop_name": "Head Office",
            "dealer_code": "HQ",
        },
        PASSWORD,
    )


def get_auth_token(client, mobile_number: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for an account."""
    response = client.post('/api/auth/login', json={
        'mobile_number': mobile_number,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
