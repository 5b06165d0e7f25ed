"""
Pytest fixtures for gestao backend tests.

Provides test database setup, master data built through the services, and
an authenticated test client.
"""

import pytest
from gestao import create_app
from gestao.extensions import db
from gestao.services import identity_service, ledger_service, party_service, products_service
from gestao.services.identity_service import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TRANSACTION_RETRY_BACKOFF': 0,
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
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def actor():
    return Actor(actor_id="uid-ana", display_name="Ana")


@pytest.fixture
def account(db_session, actor):
    """Checking account holding 1000 cents."""
    return ledger_service.create_bank_account(
        name="Conta Principal",
        bank="Banco do Brasil",
        actor=actor,
        initial_balance_cents=1000,
    )


@pytest.fixture
def supplier(db_session):
    return party_service.create_party("supplier", name="Fazenda Boa Vista", tax_id="12.345.678/0001-90")


@pytest.fixture
def customer(db_session):
    return party_service.create_party("client", name="Mercado Central", email="compras@mercado.test")


@pytest.fixture
def product(db_session):
    return products_service.create_product(
        name="Picanha",
        sku="PIC-001",
        product_type="FOR_SALE",
        sale_price_cents=500,
    )


@pytest.fixture
def setup_roles(db_session):
    """Setup default roles."""
    identity_service.ensure_default_roles()


@pytest.fixture
def admin_user(setup_roles):
    return identity_service.create_user(
        uid="uid-admin", email="admin@gestao.test", display_name="Admin", role_name="admin"
    )


@pytest.fixture
def seller_user(setup_roles):
    return identity_service.create_user(
        uid="uid-seller", email="seller@gestao.test", display_name="Vendedor", role_name="seller"
    )


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user.uid)


@pytest.fixture
def seller_headers(seller_user):
    return auth_headers(seller_user.uid)


def auth_headers(uid: str) -> dict:
    """Helper to create identity headers."""
    return {'X-User-Id': uid}
