"""
Concurrency tests.

Two clerks sell the same frame at the same moment. A file-backed SQLite
database is used so each thread gets its own connection.
"""

import threading

import pytest

from optica import create_app
from optica.errors import InsufficientStockError
from optica.extensions import db
from optica.models import Customer, Product, Sale
from optica.services import sales_service


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
        'BCRYPT_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def test_two_concurrent_sales_cannot_oversell(file_app):
    with file_app.app_context():
        customer = Customer(name="Ana Souza")
        product = Product(name="Aviator Frame", category="FRAME", stock_quantity=10, sale_price_cents=5000)
        db.session.add_all([customer, product])
        db.session.commit()
        customer_id, product_id = customer.id, product.id

    barrier = threading.Barrier(2)
    outcomes = []
    errors = []
    guard = threading.Lock()

    def sell_six():
        with file_app.app_context():
            barrier.wait()
            try:
                sales_service.create_sale(customer_id, [{"product_id": product_id, "quantity": 6}])
                outcome = "sold"
            except InsufficientStockError:
                outcome = "insufficient"
            except Exception as e:  # surfaced through the assertion below
                with guard:
                    errors.append(e)
                return
            finally:
                db.session.remove()
            with guard:
                outcomes.append(outcome)

    threads = [threading.Thread(target=sell_six) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert sorted(outcomes) == ["insufficient", "sold"]

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 4
        assert db.session.query(Sale).count() == 1
