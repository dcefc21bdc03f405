"""
Pytest fixtures for consignment backend tests.

Provides test database setup, two tenants, staff users, consignors and a
test client.
"""

from datetime import datetime

import pytest
from consignment import create_app
from consignment.config import TestConfig
from consignment.extensions import db
from consignment.models import Organization
from consignment.models.auth import ROLE_OWNER, ROLE_CLERK, ROLE_CONSIGNOR
from consignment.services.auth_service import create_user
from consignment.services.consignor_service import create_consignor
from consignment.services.transaction_service import record_sale


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Second Time Around", code="STA", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Encore Resale", code="ENC", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def owner_a(db_session, org_a):
    return create_user(
        org_id=org_a.id, username="owner_a", email="owner@sta.test",
        password=PASSWORD, role=ROLE_OWNER,
    )


@pytest.fixture(scope='function')
def clerk_a(db_session, org_a):
    return create_user(
        org_id=org_a.id, username="clerk_a", email="clerk@sta.test",
        password=PASSWORD, role=ROLE_CLERK,
    )


@pytest.fixture(scope='function')
def owner_b(db_session, org_b):
    return create_user(
        org_id=org_b.id, username="owner_b", email="owner@enc.test",
        password=PASSWORD, role=ROLE_OWNER,
    )


@pytest.fixture(scope='function')
def consignor_a(db_session, org_a):
    """Consignor in Organization A keeping 60% of each sale."""
    return create_consignor(
        org_id=org_a.id, first_name="Ada", last_name="Lovelace",
        consignor_split_percent="60", email="ada@example.com",
    )


@pytest.fixture(scope='function')
def consignor_a2(db_session, org_a):
    """Second consignor in Organization A on a 50/50 split."""
    return create_consignor(
        org_id=org_a.id, first_name="Grace", last_name="Hopper",
        consignor_split_percent="50",
    )


@pytest.fixture(scope='function')
def consignor_b(db_session, org_b):
    """Consignor in Organization B."""
    return create_consignor(
        org_id=org_b.id, first_name="Alan", last_name="Turing",
        consignor_split_percent="40",
    )


@pytest.fixture(scope='function')
def portal_user_a(db_session, org_a, consignor_a):
    """Consignor-role portal account linked to consignor_a."""
    return create_user(
        org_id=org_a.id, username="ada", email="ada@portal.test",
        password=PASSWORD, role=ROLE_CONSIGNOR, consignor_id=consignor_a.id,
    )


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Factory recording a completed sale for a consignor."""
    def _make_sale(consignor, price_cents: int, sale_date: datetime | None = None, **kwargs):
        return record_sale(
            org_id=consignor.org_id,
            consignor_id=consignor.id,
            sale_price_cents=price_cents,
            sale_date=sale_date,
            **kwargs,
        )
    return _make_sale


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner_a):
    return auth_headers(get_auth_token(client, "owner_a"))


@pytest.fixture(scope='function')
def clerk_headers(client, clerk_a):
    return auth_headers(get_auth_token(client, "clerk_a"))


@pytest.fixture(scope='function')
def owner_b_headers(client, owner_b):
    return auth_headers(get_auth_token(client, "owner_b"))


@pytest.fixture(scope='function')
def portal_headers(client, portal_user_a):
    return auth_headers(get_auth_token(client, "ada"))
