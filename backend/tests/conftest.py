"""
Pytest fixtures for optica backend tests.

Provides test database setup, user/token fixtures, and test client.
"""

import pytest
from optica import create_app
from optica.extensions import db
from optica.models import Customer, Product
from optica.services import auth_service, session_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


@pytest.fixture(scope='function')
def admin_user(db_session):
    return auth_service.create_user("admin", "admin@optica.local", TEST_PASSWORD, role="admin")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return auth_service.create_user("maria", "maria@optica.local", TEST_PASSWORD, role="staff")


def _auth_headers(user):
    _, token = session_service.create_session(user_id=user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    return _auth_headers(staff_user)


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Ana Souza", email="ana@example.com", cpf="123.456.789-00", phone="11 99999-0000")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def frame(db_session):
    """Frame with 10 on hand at R$50.00."""
    product = Product(
        name="Aviator Frame",
        category="FRAME",
        sku="FR-001",
        stock_quantity=10,
        cost_price_cents=2000,
        sale_price_cents=5000,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def lens(db_session):
    """Single-vision lens with 5 on hand at R$120.00."""
    product = Product(
        name="Single Vision Lens",
        category="PRESCRIPTION_LENS",
        sku="LN-001",
        stock_quantity=5,
        sale_price_cents=12000,
        lens_type="SINGLE_VISION",
        lens_material="RESIN",
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Fresh stock level straight from the database."""
    def _stock_of(product_id):
        db_session.expire_all()
        return db_session.get(Product, product_id).stock_quantity
    return _stock_of
